"""Reward pool and rewards root account state."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from staking_rewards.codec import (
    AccountType,
    BorshReader,
    BorshWriter,
    _pack_state,
    _unpack_state,
)
from staking_rewards.errors import (
    EverlendError,
    EverlendErrorCode,
    ProgramError,
    ProgramErrorKind,
)
from staking_rewards.precision import U64_MAX
from staking_rewards.pubkey import PUBKEY_BYTES, Pubkey

if TYPE_CHECKING:
    from staking_rewards.deprecated_pool import DeprecatedRewardPool, DeprecatedRewardVault
    from staking_rewards.mining import Mining

MAX_REWARDS = 3
MAX_TIERS = 5


def _checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise EverlendError(EverlendErrorCode.MATH_OVERFLOW)
    return result


def _checked_sub(a: int, b: int) -> int:
    if b > a:
        raise EverlendError(EverlendErrorCode.MATH_OVERFLOW)
    return a - b


def _write_fields(obj: Any, fields: tuple, writer: BorshWriter) -> None:
    """Write ``obj`` by its layout.

    Each layout entry is ``(attribute, kind)``: a string kind names a
    primitive writer method, a class kind is a vector of that class.
    """
    for name, kind in fields:
        value = getattr(obj, name)
        if isinstance(kind, str):
            getattr(writer, f"write_{kind}")(value)
        else:
            writer.write_vec(value, lambda item: item.serialize(writer))


def _read_fields(cls: type, fields: tuple, reader: BorshReader) -> Any:
    """Read an instance of ``cls`` by its layout."""
    values = {}
    for name, kind in fields:
        if isinstance(kind, str):
            values[name] = getattr(reader, f"read_{kind}")()
        else:
            values[name] = reader.read_vec(partial(kind.deserialize, reader))
    return cls(**values)


@dataclass
class RewardTier:
    """Reward ratio for one tier of stakers."""

    ratio_base: int
    ratio_quote: int
    reward_max_amount_per_period: int

    LEN: ClassVar[int] = 8 + 8 + 8
    _FIELDS: ClassVar[tuple] = tuple(
        (name, "u64") for name in ("ratio_base", "ratio_quote", "reward_max_amount_per_period")
    )

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> RewardTier:
        return _read_fields(cls, cls._FIELDS, reader)


@dataclass
class RewardVault:
    """A reward token distributed by a pool."""

    vault_token_account_bump: int = 0
    reward_mint: Pubkey = field(default_factory=Pubkey.default)
    reward_period_sec: int = 0
    is_enabled: bool = False
    enabled_at: int = 0
    claimed_total_amount: int = 0
    reward_tiers: list[RewardTier] = field(default_factory=list)

    LEN: ClassVar[int] = 1 + PUBKEY_BYTES + 4 + 1 + 8 + 8 + (4 + RewardTier.LEN * MAX_TIERS)
    _FIELDS: ClassVar[tuple] = (
        ("vault_token_account_bump", "u8"),
        ("reward_mint", "pubkey"),
        ("reward_period_sec", "u32"),
        ("is_enabled", "bool"),
        ("enabled_at", "u64"),
        ("claimed_total_amount", "u64"),
        ("reward_tiers", RewardTier),
    )

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> RewardVault:
        return _read_fields(cls, cls._FIELDS, reader)


def _upgrade_vault(vault: DeprecatedRewardVault) -> RewardVault:
    values = {f.name: getattr(vault, f.name) for f in dataclasses.fields(vault)}
    values["reward_tiers"] = [dataclasses.replace(t) for t in vault.reward_tiers]
    return RewardVault(**values)


@dataclass(frozen=True)
class InitRewardPoolParams:
    """Parameters for a new reward pool."""

    rewards_root: Pubkey
    bump: int
    liquidity_mint: Pubkey
    lock_time_sec: int
    max_stakers: int


@dataclass
class RewardPool:
    """Staking pool for one liquidity mint and its reward vaults."""

    account_type: AccountType
    rewards_root: Pubkey
    bump: int
    liquidity_mint: Pubkey
    max_stakers: int
    total_stakers: int
    total_amount: int
    lock_time_sec: int
    vaults: list[RewardVault] = field(default_factory=list)

    LEN: ClassVar[int] = 1 + (
        PUBKEY_BYTES + 1 + PUBKEY_BYTES + 8 + 8 + 8 + 8 + (4 + RewardVault.LEN * MAX_REWARDS)
    )
    _FIELDS: ClassVar[tuple] = (
        ("account_type", "account_type"),
        ("rewards_root", "pubkey"),
        ("bump", "u8"),
        ("liquidity_mint", "pubkey"),
        ("max_stakers", "u64"),
        ("total_stakers", "u64"),
        ("total_amount", "u64"),
        ("lock_time_sec", "u64"),
        ("vaults", RewardVault),
    )

    @classmethod
    def init(cls, params: InitRewardPoolParams) -> RewardPool:
        return cls(
            account_type=AccountType.REWARD_POOL,
            rewards_root=params.rewards_root,
            bump=params.bump,
            liquidity_mint=params.liquidity_mint,
            max_stakers=params.max_stakers,
            total_stakers=0,
            total_amount=0,
            lock_time_sec=params.lock_time_sec,
        )

    def _find_vault(self, reward_mint: Pubkey) -> Optional[RewardVault]:
        return next((v for v in self.vaults if v.reward_mint == reward_mint), None)

    def update_vault_totals(self, reward_mint: Pubkey, amount: int) -> None:
        """Add a claimed amount to the vault of ``reward_mint``."""
        vault = self._find_vault(reward_mint)
        if vault is None:
            raise EverlendError(EverlendErrorCode.INVALID_REWARD_VAULT)
        vault.claimed_total_amount = _checked_add(vault.claimed_total_amount, amount)

    def add_vault(self, reward: RewardVault) -> None:
        if self._find_vault(reward.reward_mint) is not None:
            raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)
        if len(self.vaults) == MAX_REWARDS:
            raise EverlendError(EverlendErrorCode.INVALID_REWARD_VAULT)
        self.vaults.append(reward)

    def deposit(
        self, mining: Mining, amount: int, is_first_deposit: bool, timestamp: int
    ) -> None:
        """Refresh the miner's rewards, then add ``amount`` to its stake."""
        mining.refresh_rewards(self.vaults, timestamp)

        if is_first_deposit:
            if self.max_stakers > 0 and self.total_stakers >= self.max_stakers:
                raise EverlendError(EverlendErrorCode.POOL_IS_FULL)
            self.total_stakers = _checked_add(self.total_stakers, 1)

        self.total_amount = _checked_add(self.total_amount, amount)
        mining.amount = _checked_add(mining.amount, amount)
        mining.last_deposit_time = timestamp

    def withdraw(self, amount: int) -> None:
        """Remove a whole stake of ``amount`` and its staker."""
        self.total_amount = _checked_sub(self.total_amount, amount)
        self.total_stakers = _checked_sub(self.total_stakers, 1)

    @classmethod
    def migrate(
        cls, deprecated_pool: DeprecatedRewardPool, max_stakers: int, total_stakers: int
    ) -> RewardPool:
        """Build a current pool from the older layout."""
        return cls(
            account_type=deprecated_pool.account_type,
            rewards_root=deprecated_pool.rewards_root,
            bump=deprecated_pool.bump,
            liquidity_mint=deprecated_pool.liquidity_mint,
            max_stakers=max_stakers,
            total_stakers=total_stakers,
            total_amount=deprecated_pool.total_amount,
            lock_time_sec=deprecated_pool.lock_time_sec,
            vaults=[_upgrade_vault(v) for v in deprecated_pool.vaults],
        )

    def is_initialized(self) -> bool:
        return self.account_type == AccountType.REWARD_POOL

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> RewardPool:
        return _read_fields(cls, cls._FIELDS, reader)

    def pack(self) -> bytes:
        """Account data of exactly ``LEN`` bytes."""
        return _pack_state(self.serialize, self.LEN)

    @classmethod
    def unpack(cls, data: bytes) -> RewardPool:
        return _unpack_state(data, cls.LEN, cls.deserialize)


@dataclass
class RewardsRoot:
    """Root account holding the administrative authority."""

    account_type: AccountType
    authority: Pubkey

    LEN: ClassVar[int] = 1 + PUBKEY_BYTES
    _FIELDS: ClassVar[tuple] = (
        ("account_type", "account_type"),
        ("authority", "pubkey"),
    )

    @classmethod
    def init(cls, authority: Pubkey) -> RewardsRoot:
        return cls(account_type=AccountType.REWARDS_ROOT, authority=authority)

    def is_initialized(self) -> bool:
        return self.account_type == AccountType.REWARDS_ROOT

    def serialize(self, writer: BorshWriter) -> None:
        _write_fields(self, self._FIELDS, writer)

    @classmethod
    def deserialize(cls, reader: BorshReader) -> RewardsRoot:
        return _read_fields(cls, cls._FIELDS, reader)

    def pack(self) -> bytes:
        """Account data of exactly ``LEN`` bytes."""
        return _pack_state(self.serialize, self.LEN)

    @classmethod
    def unpack(cls, data: bytes) -> RewardsRoot:
        return _unpack_state(data, cls.LEN, cls.deserialize)