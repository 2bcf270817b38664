"""Reward pool state in its older layout, kept for migration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from staking_rewards.codec import (
    AccountType,
    BorshReader,
    BorshWriter,
    _pack_state,
    _unpack_state,
)
from staking_rewards.pubkey import PUBKEY_BYTES, Pubkey
from staking_rewards.reward_pool import (
    MAX_REWARDS,
    MAX_TIERS,
    InitRewardPoolParams,
    RewardPool,
    RewardTier,
    RewardVault,
    _read_fields,
    _write_fields,
)


@dataclass
class DeprecatedRewardVault:
    """Reward vault without the claimed total."""

    vault_token_account_bump: int = 0
    reward_mint: Pubkey = field(default_factory=Pubkey.default)
    reward_period_sec: int = 0
    is_enabled: bool = False
    enabled_at: int = 0
    reward_tiers: list[RewardTier] = field(default_factory=list)

    LEN: ClassVar[int] = 1 + PUBKEY_BYTES + 4 + 1 + 8 + (4 + RewardTier.LEN * MAX_TIERS)
    _FIELDS: ClassVar[tuple] = tuple(
        spec for spec in RewardVault._FIELDS if spec[0] != "claimed_total_amount"
    )

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> DeprecatedRewardVault:
        return _read_fields(cls, cls._FIELDS, reader)


@dataclass
class DeprecatedRewardPool:
    """Reward pool without staker limits."""

    account_type: AccountType
    rewards_root: Pubkey
    bump: int
    liquidity_mint: Pubkey
    total_amount: int
    lock_time_sec: int
    vaults: list[DeprecatedRewardVault] = field(default_factory=list)

    LEN: ClassVar[int] = 8 + (
        PUBKEY_BYTES
        + 1
        + PUBKEY_BYTES
        + 8
        + (4 + DeprecatedRewardVault.LEN * MAX_REWARDS)
        + PUBKEY_BYTES
    )
    _FIELDS: ClassVar[tuple] = tuple(
        (name, DeprecatedRewardVault if name == "vaults" else kind)
        for name, kind in RewardPool._FIELDS
        if name not in ("max_stakers", "total_stakers")
    )

    @classmethod
    def init(cls, params: InitRewardPoolParams) -> DeprecatedRewardPool:
        return cls(
            account_type=AccountType.REWARD_POOL,
            rewards_root=params.rewards_root,
            bump=params.bump,
            liquidity_mint=params.liquidity_mint,
            total_amount=0,
            lock_time_sec=params.lock_time_sec,
        )

    def is_initialized(self) -> bool:
        return self.rewards_root != Pubkey.default()

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> DeprecatedRewardPool:
        return _read_fields(cls, cls._FIELDS, reader)

    def pack(self) -> bytes:
        """Account data of exactly ``LEN`` bytes."""
        return _pack_state(self.serialize, self.LEN)

    @classmethod
    def unpack(cls, data: bytes) -> DeprecatedRewardPool:
        return _unpack_state(data, cls.LEN, cls.deserialize)