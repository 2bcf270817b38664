"""Administrative and migration instructions of the rewards program."""

from __future__ import annotations

from typing import Optional, Sequence

from staking_rewards.accounts import (
    AccountInfo,
    AccountLoader,
    Clock,
    Rent,
    assert_account_key,
    assert_signer,
    create_account,
    realloc_with_rent,
)
from staking_rewards.addresses import find_reward_pool_program_address
from staking_rewards.deprecated_pool import DeprecatedRewardPool
from staking_rewards.errors import ProgramError, ProgramErrorKind
from staking_rewards.mining import DeprecatedMining, Mining
from staking_rewards.pubkey import (
    CLOCK_SYSVAR_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    Pubkey,
    create_program_address,
)
from staking_rewards.reward_pool import MAX_TIERS, RewardPool, RewardsRoot, RewardTier

_U64_MODULUS = 2**64


def _as_u64(timestamp: int) -> int:
    return timestamp % _U64_MODULUS


def _store(account: AccountInfo, data: bytes) -> None:
    """Replace an account's data with packed state."""
    account.data = bytearray(data) if isinstance(account.data, bytearray) else bytes(data)


def _mining_address(
    user: Pubkey, reward_pool: Pubkey, bump: int, program_id: Pubkey
) -> Pubkey:
    return create_program_address(
        [b"mining", bytes(user), bytes(reward_pool), bytes([bump])], program_id
    )


def _reward_pool_address(pool: RewardPool, program_id: Pubkey) -> Pubkey:
    return create_program_address(
        [
            b"reward_pool",
            bytes(pool.rewards_root),
            bytes(pool.liquidity_mint),
            bytes([pool.bump]),
        ],
        program_id,
    )


class UpdateVaultContext:
    """Accounts of an ``UpdateVault`` instruction."""

    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
        loader = AccountLoader(accounts)
        self.rewards_root = loader.next_with_owner(program_id)
        self.reward_pool = loader.next_with_owner(program_id)
        self.reward_mint = loader.next_with_owner(TOKEN_PROGRAM_ID)
        self.payer = loader.next_signer()
        self.clock = loader.next_with_key(CLOCK_SYSVAR_ID)

    def process(
        self,
        program_id: Pubkey,
        reward_period_sec: Optional[int] = None,
        is_enabled: Optional[bool] = None,
        reward_tiers: Optional[Sequence[RewardTier]] = None,
    ) -> None:
        """Change the given vault parameters; ``None`` leaves one unchanged."""
        del program_id
        reward_pool = RewardPool.unpack(self.reward_pool.data)
        assert_account_key(self.rewards_root, reward_pool.rewards_root)

        rewards_root = RewardsRoot.unpack(self.rewards_root.data)
        assert_account_key(self.payer, rewards_root.authority)

        vault = next(
            (v for v in reward_pool.vaults if v.reward_mint == self.reward_mint.key), None
        )
        if vault is None:
            raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)

        if reward_period_sec is not None:
            vault.reward_period_sec = reward_period_sec

        if is_enabled is not None:
            if not vault.is_enabled and is_enabled:
                # Distribution restarts from the moment the vault is enabled.
                vault.enabled_at = _as_u64(Clock.from_account(self.clock).unix_timestamp)
            vault.is_enabled = is_enabled

        if reward_tiers is not None:
            vault.reward_tiers = list(reward_tiers)

        _store(self.reward_pool, reward_pool.pack())


class UpgradeMiningContext:
    """Accounts of an ``UpgradeMining`` instruction."""

    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
        loader = AccountLoader(accounts)
        self.rewards_root = loader.next_with_owner(program_id)
        self.reward_pool = loader.next_with_owner(program_id)
        self.mining = loader.next_with_owner(program_id)
        self.user = loader.next_unchecked()
        self.authority = loader.next_signer()
        self.clock = loader.next_with_key(CLOCK_SYSVAR_ID)

    def process(self, program_id: Pubkey, tier: int) -> None:
        """Accrue rewards at the current tier, then switch the user to ``tier``."""
        reward_pool = RewardPool.unpack(self.reward_pool.data)
        assert_account_key(self.rewards_root, reward_pool.rewards_root)

        rewards_root = RewardsRoot.unpack(self.rewards_root.data)
        assert_account_key(self.authority, rewards_root.authority)

        mining = Mining.unpack(self.mining.data)
        assert_account_key(
            self.mining,
            _mining_address(self.user.key, self.reward_pool.key, mining.bump, program_id),
        )
        assert_account_key(self.reward_pool, mining.reward_pool)
        assert_account_key(self.user, mining.owner)

        timestamp = Clock.from_account(self.clock).unix_timestamp

        if tier > MAX_TIERS - 1 or tier == mining.reward_tier:
            raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)

        mining.refresh_rewards(reward_pool.vaults, _as_u64(timestamp))
        mining.reward_tier = tier

        _store(self.mining, mining.pack())


class InitializeRootContext:
    """Accounts of an ``InitializeRoot`` instruction."""

    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
        del program_id
        loader = AccountLoader(accounts)
        self.rewards_root = loader.next_uninitialized()
        self.authority = loader.next_signer()
        loader.next_with_key(SYSTEM_PROGRAM_ID)
        self.rent = loader.next_with_key(RENT_SYSVAR_ID)

    def process(self, program_id: Pubkey) -> None:
        """Create the root account, paid by the authority, and record the authority."""
        assert_signer(self.rewards_root)

        create_account(
            program_id,
            self.authority,
            self.rewards_root,
            Rent.from_account(self.rent),
            RewardsRoot.LEN,
        )
        _store(self.rewards_root, RewardsRoot.init(self.authority.key).pack())


class MigratePoolContext:
    """Accounts of a ``MigratePool`` instruction."""

    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
        loader = AccountLoader(accounts)
        self.rewards_root = loader.next_with_owner(program_id)
        self.reward_pool = loader.next_with_owner(program_id)
        self.liquidity_mint = loader.next_with_owner(TOKEN_PROGRAM_ID)
        self.payer = loader.next_signer()
        loader.next_with_key(SYSTEM_PROGRAM_ID)
        self.rent = loader.next_with_key(RENT_SYSVAR_ID)

    def process(self, program_id: Pubkey, max_stakers: int, total_stakers: int) -> None:
        """Rewrite a pool stored in the older layout in the current one."""
        rent = Rent.from_account(self.rent)

        deprecated_pool = DeprecatedRewardPool.unpack(self.reward_pool.data)
        reward_pool = RewardPool.migrate(deprecated_pool, max_stakers, total_stakers)

        reward_pool_key, _ = find_reward_pool_program_address(
            program_id, self.rewards_root.key, self.liquidity_mint.key
        )

        rewards_root = RewardsRoot.unpack(self.rewards_root.data)
        assert_account_key(self.payer, rewards_root.authority)
        assert_account_key(self.reward_pool, reward_pool_key)
        assert_account_key(self.rewards_root, deprecated_pool.rewards_root)
        assert_account_key(self.liquidity_mint, deprecated_pool.liquidity_mint)

        realloc_with_rent(self.reward_pool, self.payer, rent, RewardPool.LEN)
        _store(self.reward_pool, reward_pool.pack())


class MigrateMiningContext:
    """Accounts of a ``MigrateMining`` instruction."""

    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo]) -> None:
        loader = AccountLoader(accounts)
        self.mining = loader.next_with_owner(program_id)
        self.rewards_root = loader.next_with_owner(program_id)
        self.reward_pool = loader.next_with_owner(program_id)
        self.liquidity_mint = loader.next_with_owner(TOKEN_PROGRAM_ID)
        self.payer = loader.next_signer()
        loader.next_with_key(SYSTEM_PROGRAM_ID)
        self.rent = loader.next_with_key(RENT_SYSVAR_ID)

    def process(self, program_id: Pubkey) -> None:
        """Rewrite a mining account stored in the older layout in the current one."""
        rent = Rent.from_account(self.rent)

        deprecated_mining = DeprecatedMining.unpack(self.mining.data)
        mining = Mining.migrate(deprecated_mining)

        reward_pool = RewardPool.unpack(self.reward_pool.data)

        assert_account_key(self.payer, mining.owner)
        assert_account_key(self.reward_pool, mining.reward_pool)
        assert_account_key(self.reward_pool, _reward_pool_address(reward_pool, program_id))
        assert_account_key(
            self.mining,
            _mining_address(self.payer.key, self.reward_pool.key, mining.bump, program_id),
        )

        realloc_with_rent(self.mining, self.payer, rent, Mining.LEN)
        _store(self.mining, mining.pack())