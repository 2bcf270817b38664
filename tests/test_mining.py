import pytest

from staking_rewards.codec import AccountType
from staking_rewards.errors import (
    EverlendError,
    EverlendErrorCode,
    ProgramError,
    ProgramErrorKind,
)
from staking_rewards.mining import (
    DeprecatedMining,
    DeprecatedRewardIndex,
    Mining,
    RewardIndex,
)
from staking_rewards.pubkey import Pubkey
from staking_rewards.reward_pool import (
    InitRewardPoolParams,
    RewardPool,
    RewardTier,
    RewardVault,
)

START = 1_700_000_000


def key(n):
    return Pubkey(bytes([n]) * 32)


REWARD_POOL = key(1)
OWNER = key(2)
REWARD_MINT = key(3)


def make_vault(base, quote, period, max_amount=0, enabled_at=START, is_enabled=True):
    return RewardVault(
        vault_token_account_bump=0,
        reward_mint=REWARD_MINT,
        reward_period_sec=period,
        reward_tiers=[RewardTier(base, quote, max_amount)],
        is_enabled=is_enabled,
        enabled_at=enabled_at,
        claimed_total_amount=0,
    )


def check_mining_maths(base, quote, period, add_time, max_amount, deposit, reward):
    vault = make_vault(base, quote, period, max_amount)
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = deposit
    mining.rewards_calculated_at = START

    new_timestamp = START + add_time
    mining.refresh_rewards([vault], new_timestamp)

    assert mining.indexes[0].rewards == reward
    assert mining.rewards_calculated_at == new_timestamp


@pytest.mark.parametrize(
    "base, quote, add_periods, max_amount, deposit, reward",
    [
        (100_000_000, 1000, 1, 0, 100_000_000, 1000),
        (100_000_000, 1000, 1, 20, 100_000_000, 20),
        (100_000_000, 1000, 10, 20, 10_000_000_000, 200),
        (100_000_000, 1000, 0.5, 0, 100_000_000, 0),
        (100_000_000, 1000, 5, 0, 25_000_000, 1250),
        (1_000, 1, 1, 0, 1_250, 1),
        (1_000, 1, 2, 0, 1_250, 2),
        (1_000, 1, 4, 0, 1_250, 5),
    ],
)
def test_reward_calculation(base, quote, add_periods, max_amount, deposit, reward):
    period = 60
    check_mining_maths(base, quote, period, int(period * add_periods), max_amount, deposit, reward)


def test_claim_success():
    pool = RewardPool.init(
        InitRewardPoolParams(
            rewards_root=key(9),
            bump=255,
            liquidity_mint=key(8),
            lock_time_sec=0,
            max_stakers=5,
        )
    )
    reward_period = 3600
    pool.add_vault(make_vault(100, 1, reward_period))

    deposit_amount = 50_000
    exp_reward_amount = 500
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    pool.deposit(mining, deposit_amount, True, START)

    mining.refresh_rewards(pool.vaults, START + reward_period)
    reward_amount = mining.flush_rewards(REWARD_MINT)
    pool.update_vault_totals(REWARD_MINT, reward_amount)

    assert reward_amount == exp_reward_amount
    assert mining.indexes[0].rewards == 0
    assert mining.indexes[0].claimed_total_rewards == exp_reward_amount
    assert pool.vaults[0].claimed_total_amount == exp_reward_amount


def test_first_refresh_only_records_time():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.refresh_rewards([make_vault(1, 1, 1)], START)
    assert mining.indexes == []
    assert mining.rewards_calculated_at == START


def test_disabled_vault_is_skipped():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.rewards_calculated_at = START
    mining.refresh_rewards([make_vault(1, 1, 1, is_enabled=False)], START + 100)
    assert mining.indexes == []
    assert mining.rewards_calculated_at == START + 100


def test_period_starts_at_vault_enable_time():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.rewards_calculated_at = START
    vault = make_vault(1000, 1, 60, enabled_at=START + 60)
    mining.refresh_rewards([vault], START + 60)
    assert mining.indexes[0].rewards == 0


def test_tier_index_clamped_to_last_tier():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.rewards_calculated_at = START
    mining.reward_tier = 2
    vault = make_vault(1000, 1, 60)
    vault.reward_tiers.append(RewardTier(1000, 3, 0))
    mining.refresh_rewards([vault], START + 60)
    assert mining.indexes[0].rewards == 3


def test_empty_tiers_raise():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.rewards_calculated_at = START
    vault = make_vault(1, 1, 60)
    vault.reward_tiers.clear()
    with pytest.raises(EverlendError) as excinfo:
        mining.refresh_rewards([vault], START + 60)
    assert excinfo.value.code is EverlendErrorCode.INVALID_REWARD_TIER


def test_flush_absent_mint_creates_empty_index():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    assert mining.flush_rewards(key(50)) == 0
    assert mining.indexes == [RewardIndex(reward_mint=key(50))]


def test_reward_index_is_reused():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    first = mining.reward_index(REWARD_MINT)
    first.rewards = 7
    assert mining.reward_index(REWARD_MINT).rewards == 7
    assert len(mining.indexes) == 1


def test_initialize():
    mining = Mining.initialize(REWARD_POOL, 254, OWNER)
    assert mining.account_type is AccountType.MINING
    assert mining.bump == 254
    assert mining.owner == OWNER
    assert mining.reward_pool == REWARD_POOL
    assert (mining.amount, mining.reward_tier, mining.indexes) == (0, 0, [])


def test_pack_unpack_round_trip():
    mining = Mining.initialize(REWARD_POOL, 254, OWNER)
    mining.amount = 1250
    mining.indexes.append(RewardIndex(REWARD_MINT, 10, 20))
    data = mining.pack()
    assert len(data) == Mining.LEN
    assert Mining.unpack(data) == mining


def test_unpack_without_owner_is_uninitialized():
    mining = Mining.initialize(REWARD_POOL, 254, Pubkey.default())
    with pytest.raises(ProgramError) as excinfo:
        Mining.unpack(mining.pack())
    assert excinfo.value.kind is ProgramErrorKind.UNINITIALIZED_ACCOUNT


def test_migrate_mining_success():
    pool = RewardPool.init(
        InitRewardPoolParams(
            rewards_root=key(9), bump=255, liquidity_mint=key(8), lock_time_sec=0, max_stakers=1
        )
    )
    init_mining = Mining.initialize(REWARD_POOL, 251, OWNER)
    pool.deposit(init_mining, 1250, True, START)
    init_mining.indexes.append(RewardIndex(REWARD_MINT, 33, 44))

    mining_old = DeprecatedMining(
        account_type=init_mining.account_type,
        reward_pool=init_mining.reward_pool,
        bump=init_mining.bump,
        amount=init_mining.amount,
        rewards_calculated_at=init_mining.rewards_calculated_at,
        owner=init_mining.owner,
        last_deposit_time=init_mining.last_deposit_time,
        reward_tier=init_mining.reward_tier,
        indexes=[
            DeprecatedRewardIndex(reward_mint=i.reward_mint, rewards=i.rewards)
            for i in init_mining.indexes
        ],
    )
    data = mining_old.pack()
    assert len(data) == DeprecatedMining.LEN

    mining = Mining.unpack(Mining.migrate(DeprecatedMining.unpack(data)).pack())

    assert mining.reward_pool == init_mining.reward_pool
    assert mining.bump == init_mining.bump
    assert mining.owner == init_mining.owner
    assert mining.amount == init_mining.amount
    assert mining.last_deposit_time == init_mining.last_deposit_time
    assert mining.indexes == [RewardIndex(REWARD_MINT, 33, 0)]


def test_deprecated_mining_uninitialized():
    mining_old = DeprecatedMining(
        account_type=AccountType.MINING,
        reward_pool=REWARD_POOL,
        bump=1,
        amount=0,
        rewards_calculated_at=0,
        owner=Pubkey.default(),
        last_deposit_time=0,
        reward_tier=0,
    )
    assert not mining_old.is_initialized()
    with pytest.raises(ProgramError) as excinfo:
        DeprecatedMining.unpack(mining_old.pack())
    assert excinfo.value.kind is ProgramErrorKind.UNINITIALIZED_ACCOUNT


def test_refresh_overflow_raises():
    mining = Mining.initialize(REWARD_POOL, 0, OWNER)
    mining.amount = 1000
    mining.rewards_calculated_at = START
    mining.reward_index(REWARD_MINT).rewards = 2**64 - 1
    with pytest.raises(EverlendError) as excinfo:
        mining.refresh_rewards([make_vault(1, 1, 60)], START + 60)
    assert excinfo.value.code is EverlendErrorCode.MATH_OVERFLOW