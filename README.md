# staking_rewards

Account state, reward arithmetic and instruction building for a staking
rewards program. Users deposit a liquidity token into a reward pool and hold
a mining account that tracks their stake. They earn rewards from up to three
reward vaults. Each vault has its own payout period and up to five reward
tiers.

The package has no third-party dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `staking_rewards.errors`: `ProgramError`, which carries a `ProgramErrorKind`
  and a message, and its subclass `EverlendError`, which carries an
  `EverlendErrorCode` (for example `MATH_OVERFLOW`, `POOL_IS_FULL` or
  `LOCK_TIME_STILL_ACTIVE`). `EverlendErrorCode.message()` returns the text
  of a code.
- `staking_rewards.pubkey`: `Pubkey` holds 32 bytes. It parses with
  `Pubkey.from_base58`, prints as base58 and converts with `bytes()`.
  `Pubkey.default()` is the all-zero key. The module also has
  `is_on_curve`, `create_program_address`, `find_program_address` (tries
  bumps from 255 down) and `find_authority_address`. The abstract `Pda`
  base class provides `find_address` and `signing_seeds` on top of
  `raw_seeds`.
- `staking_rewards.precision`: `abs_diff`, `percent_ratio` and
  `share_floor` (scaled by `PRECISION_SCALER` = 1 000 000 000). Each of them
  raises `ValueError` if an input is not an unsigned 64-bit integer.
- `staking_rewards.accounts`:
  - `AccountInfo` (key, owner, lamports, data, signer and writable flags).
  - The `Rent` and `Clock` sysvars, each with `from_account` / `to_bytes`.
  - `AccountLoader`, which takes accounts in order and checks each one with
    `next_uninitialized`, `next_with_owner`, `next_with_key`, `next_signer`,
    `next_optional` or `next_unchecked`.
  - The checks `assert_signer`, `assert_initialized`,
    `assert_uninitialized`, `assert_owned_by`, `assert_account_key`,
    `assert_rent_exempt` and `assert_non_zero_amount`.
  - The in-memory lamport helpers `create_account`, `transfer_lamports`,
    `realloc_with_rent` and `close_account`.
- `staking_rewards.codec`: `BorshReader` / `BorshWriter` for little-endian
  integers, bools, public keys, u32-length vectors and options. It also
  defines `AccountType` and `CodecError`.
- `staking_rewards.reward_pool`:
  - `RewardTier`, `RewardVault`, `InitRewardPoolParams` and `RewardsRoot`.
  - `RewardPool`, with `add_vault`, `deposit`, `withdraw`,
    `update_vault_totals` and `migrate`.
- `staking_rewards.deprecated_pool`: the older `DeprecatedRewardPool` and
  `DeprecatedRewardVault` layouts, without staker limits or claimed totals.
- `staking_rewards.mining`: `Mining`, which has the methods
  `refresh_rewards`, `flush_rewards`, `reward_index` and `migrate`. The
  module also defines `RewardIndex` and the older `DeprecatedMining` /
  `DeprecatedRewardIndex` layouts.
- `staking_rewards.instruction`:
  - One dataclass per instruction (`InitializePool`, `AddVault`,
    `UpdateVault`, `FillVault`, `DepositMining`, `WithdrawMining`, `Claim`,
    `UpgradeMining`, `InitializeRoot`, `MigratePool`, `MigrateMining`).
  - `encode_instruction` / `decode_instruction`.
  - Builders that return an `Instruction` with its `AccountMeta` list:
    `initialize_pool`, `add_vault`, `update_vault`, `fill_vault`,
    `deposit_mining`, `withdraw_mining`, `upgrade_mining`, `claim`,
    `initialize_root`, `migrate_pool`, `migrate_mining`.
- `staking_rewards.addresses`:
  - `PROGRAM_ID`.
  - `find_reward_pool_program_address`, `find_reward_pool_spl_token_account`,
    `find_vault_spl_token_account` and `find_mining_program_address`.
- `staking_rewards.operations`: contexts that load and check an
  instruction's accounts and then apply it with `process`:
  - `UpdateVaultContext`
  - `UpgradeMiningContext`
  - `InitializeRootContext`
  - `MigratePoolContext`
  - `MigrateMiningContext`

## Computing rewards

```python
from staking_rewards.mining import Mining
from staking_rewards.pubkey import Pubkey
from staking_rewards.reward_pool import RewardTier, RewardVault

reward_mint = Pubkey(bytes(range(32)))
vault = RewardVault(
    vault_token_account_bump=0,
    reward_mint=reward_mint,
    reward_period_sec=60,
    is_enabled=True,
    enabled_at=1_000,
    claimed_total_amount=0,
    reward_tiers=[RewardTier(ratio_base=100_000_000, ratio_quote=1000,
                             reward_max_amount_per_period=0)],
)

mining = Mining.initialize(Pubkey.default(), 0, Pubkey(bytes([7] * 32)))
mining.amount = 100_000_000
mining.rewards_calculated_at = 1_000
mining.refresh_rewards([vault], 1_060)

print(mining.flush_rewards(reward_mint))  # 1000
```

For each enabled vault, the reward is
`periods * amount * ratio_quote // ratio_base`.

- `periods` counts only whole reward periods since the later of the last
  calculation and the vault's `enabled_at`.
- The tier used is the mining account's `reward_tier`, clamped to the last
  tier the vault has.
- When the tier's `reward_max_amount_per_period` is above zero, the reward
  is capped at that amount times `periods`.
- A mining account whose `rewards_calculated_at` is 0 accrues nothing; it
  only records the timestamp.

## Account data

`RewardPool`, `RewardsRoot`, `Mining`, `DeprecatedRewardPool` and
`DeprecatedMining` each have `pack()` and `unpack(data)` for their Borsh
layout.

- `pack()` returns exactly `LEN` bytes, zero padded. It raises
  `ProgramError` if the state does not fit.
- `unpack()` requires data of exactly `LEN` bytes.
- `unpack()` raises `ProgramError` with `INVALID_ACCOUNT_DATA` when the
  bytes do not decode. It raises `UNINITIALIZED_ACCOUNT` when the decoded
  state is not initialized.

## What this package does not do

- There is no instruction dispatcher: nothing reads instruction data and
  runs the matching context.
- `staking_rewards.operations` covers only vault updates, tier upgrades,
  root initialization and the two migrations. Pool initialization, adding
  and filling vaults, deposits, withdrawals and claims can be built as
  instructions and decoded, but the package has no context that executes
  them.
- Token balances are not modelled, and the package moves no tokens.
- The package does not talk to any network or cluster. Accounts are plain
  in-memory `AccountInfo` objects that the caller supplies.