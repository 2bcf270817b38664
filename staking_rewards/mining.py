"""Per-user mining (staking) account state and reward accrual."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable

from staking_rewards.codec import (
    AccountType,
    BorshReader,
    BorshWriter,
    _pack_state,
    _unpack_state,
)
from staking_rewards.errors import EverlendError, EverlendErrorCode
from staking_rewards.precision import U64_MAX
from staking_rewards.pubkey import PUBKEY_BYTES, Pubkey
from staking_rewards.reward_pool import MAX_REWARDS, RewardVault

U128_MAX = 2**128 - 1


def _overflow() -> EverlendError:
    return EverlendError(EverlendErrorCode.MATH_OVERFLOW)


def _checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise _overflow()
    return result


@dataclass
class RewardIndex:
    """Accrued and claimed rewards of one reward mint."""

    reward_mint: Pubkey = field(default_factory=Pubkey.default)
    rewards: int = 0
    claimed_total_rewards: int = 0

    LEN: ClassVar[int] = PUBKEY_BYTES + 8 + 8

    def serialize(self, writer: BorshWriter) -> None:
        writer.write_pubkey(self.reward_mint)
        writer.write_u64(self.rewards)
        writer.write_u64(self.claimed_total_rewards)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> RewardIndex:
        return cls(reader.read_pubkey(), reader.read_u64(), reader.read_u64())


@dataclass
class DeprecatedRewardIndex:
    """Reward index without the claimed total."""

    reward_mint: Pubkey = field(default_factory=Pubkey.default)
    rewards: int = 0

    LEN: ClassVar[int] = PUBKEY_BYTES + 8

    def serialize(self, writer: BorshWriter) -> None:
        writer.write_pubkey(self.reward_mint)
        writer.write_u64(self.rewards)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> DeprecatedRewardIndex:
        return cls(reader.read_pubkey(), reader.read_u64())


_MINING_FIXED = PUBKEY_BYTES + 1 + 8 + 8 + PUBKEY_BYTES + 8 + 1


@dataclass
class DeprecatedMining:
    """Mining account in its older layout."""

    account_type: AccountType
    reward_pool: Pubkey
    bump: int
    amount: int
    rewards_calculated_at: int
    owner: Pubkey
    last_deposit_time: int
    reward_tier: int
    indexes: list[DeprecatedRewardIndex] = field(default_factory=list)

    LEN: ClassVar[int] = 1 + (_MINING_FIXED + (4 + DeprecatedRewardIndex.LEN * MAX_REWARDS))

    def is_initialized(self) -> bool:
        return self.owner != Pubkey.default()

    def _serialize(self, writer: BorshWriter) -> None:
        writer.write_account_type(self.account_type)
        writer.write_pubkey(self.reward_pool)
        writer.write_u8(self.bump)
        writer.write_u64(self.amount)
        writer.write_u64(self.rewards_calculated_at)
        writer.write_pubkey(self.owner)
        writer.write_u64(self.last_deposit_time)
        writer.write_u8(self.reward_tier)
        writer.write_vec(self.indexes, lambda index: index.serialize(writer))

    @classmethod
    def _deserialize(cls, reader: BorshReader) -> DeprecatedMining:
        return cls(
            account_type=reader.read_account_type(),
            reward_pool=reader.read_pubkey(),
            bump=reader.read_u8(),
            amount=reader.read_u64(),
            rewards_calculated_at=reader.read_u64(),
            owner=reader.read_pubkey(),
            last_deposit_time=reader.read_u64(),
            reward_tier=reader.read_u8(),
            indexes=reader.read_vec(lambda: DeprecatedRewardIndex.deserialize(reader)),
        )

    def pack(self) -> bytes:
        return _pack_state(self._serialize, self.LEN)

    @classmethod
    def unpack(cls, data: bytes) -> DeprecatedMining:
        return _unpack_state(data, cls.LEN, cls._deserialize)


@dataclass
class Mining:
    """A user's stake in a reward pool and the rewards it has earned."""

    account_type: AccountType
    reward_pool: Pubkey
    bump: int
    amount: int
    rewards_calculated_at: int
    owner: Pubkey
    last_deposit_time: int
    reward_tier: int
    indexes: list[RewardIndex] = field(default_factory=list)

    LEN: ClassVar[int] = 1 + (_MINING_FIXED + (4 + RewardIndex.LEN * MAX_REWARDS))

    @classmethod
    def initialize(cls, reward_pool: Pubkey, bump: int, owner: Pubkey) -> Mining:
        return cls(
            account_type=AccountType.MINING,
            reward_pool=reward_pool,
            bump=bump,
            amount=0,
            rewards_calculated_at=0,
            owner=owner,
            last_deposit_time=0,
            reward_tier=0,
        )

    @classmethod
    def migrate(cls, deprecated_mining: DeprecatedMining) -> Mining:
        """Build a current mining account from the older layout."""
        return cls(
            account_type=deprecated_mining.account_type,
            reward_pool=deprecated_mining.reward_pool,
            bump=deprecated_mining.bump,
            amount=deprecated_mining.amount,
            rewards_calculated_at=deprecated_mining.rewards_calculated_at,
            owner=deprecated_mining.owner,
            last_deposit_time=deprecated_mining.last_deposit_time,
            reward_tier=deprecated_mining.reward_tier,
            indexes=[
                RewardIndex(reward_mint=i.reward_mint, rewards=i.rewards)
                for i in deprecated_mining.indexes
            ],
        )

    def reward_index(self, reward_mint: Pubkey) -> RewardIndex:
        """The index for ``reward_mint``, created empty if absent."""
        for index in self.indexes:
            if index.reward_mint == reward_mint:
                return index
        index = RewardIndex(reward_mint=reward_mint)
        self.indexes.append(index)
        return index

    def flush_rewards(self, reward_mint: Pubkey) -> int:
        """Take the accrued rewards of ``reward_mint``, recording them as claimed."""
        index = self.reward_index(reward_mint)
        amount = index.rewards
        index.rewards = 0
        index.claimed_total_rewards = _checked_add(index.claimed_total_rewards, amount)
        return amount

    def refresh_rewards(self, vaults: Iterable[RewardVault], current_timestamp: int) -> None:
        """Accrue rewards for whole periods elapsed since the last calculation."""
        calculated_at = self.rewards_calculated_at

        # On the first deposit there is nothing to accrue yet.
        if calculated_at != 0:
            amount = self.amount
            for vault in vaults:
                if not vault.is_enabled:
                    continue

                index = self.reward_index(vault.reward_mint)

                period_start = max(calculated_at, vault.enabled_at)
                elapsed = max(current_timestamp - period_start, 0)
                if vault.reward_period_sec == 0:
                    raise _overflow()
                num_periods = elapsed // vault.reward_period_sec
                if num_periods == 0:
                    continue

                tiers = vault.reward_tiers
                tier_idx = min(self.reward_tier, max(len(tiers) - 1, 0))
                if tier_idx >= len(tiers):
                    raise EverlendError(EverlendErrorCode.INVALID_REWARD_TIER)
                tier = tiers[tier_idx]

                product = num_periods * amount * tier.ratio_quote
                if product > U128_MAX or tier.ratio_base == 0:
                    raise _overflow()
                rewards = (product // tier.ratio_base) & U64_MAX

                if rewards > 0:
                    if tier.reward_max_amount_per_period > 0:
                        cap = tier.reward_max_amount_per_period * num_periods
                        if cap > U64_MAX:
                            raise _overflow()
                        rewards = min(rewards, cap)
                    index.rewards = _checked_add(index.rewards, rewards)

        self.rewards_calculated_at = current_timestamp

    def is_initialized(self) -> bool:
        return self.owner != Pubkey.default()

    def _serialize(self, writer: BorshWriter) -> None:
        writer.write_account_type(self.account_type)
        writer.write_pubkey(self.reward_pool)
        writer.write_u8(self.bump)
        writer.write_u64(self.amount)
        writer.write_u64(self.rewards_calculated_at)
        writer.write_pubkey(self.owner)
        writer.write_u64(self.last_deposit_time)
        writer.write_u8(self.reward_tier)
        writer.write_vec(self.indexes, lambda index: index.serialize(writer))

    @classmethod
    def _deserialize(cls, reader: BorshReader) -> Mining:
        return cls(
            account_type=reader.read_account_type(),
            reward_pool=reader.read_pubkey(),
            bump=reader.read_u8(),
            amount=reader.read_u64(),
            rewards_calculated_at=reader.read_u64(),
            owner=reader.read_pubkey(),
            last_deposit_time=reader.read_u64(),
            reward_tier=reader.read_u8(),
            indexes=reader.read_vec(lambda: RewardIndex.deserialize(reader)),
        )

    def pack(self) -> bytes:
        return _pack_state(self._serialize, self.LEN)

    @classmethod
    def unpack(cls, data: bytes) -> Mining:
        return _unpack_state(data, cls.LEN, cls._deserialize)