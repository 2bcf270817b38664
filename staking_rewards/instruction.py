"""Instructions understood by the rewards program and builders for them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from staking_rewards.codec import BorshReader, BorshWriter, CodecError
from staking_rewards.errors import ProgramError, ProgramErrorKind
from staking_rewards.pubkey import (
    CLOCK_SYSVAR_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    Pubkey,
)
from staking_rewards.reward_pool import RewardTier

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountMeta:
    """An account referenced by an instruction and how it is used."""

    pubkey: Pubkey
    is_signer: bool
    is_writable: bool

    @classmethod
    def writable(cls, pubkey: Pubkey, is_signer: bool = False) -> AccountMeta:
        return cls(pubkey=pubkey, is_signer=is_signer, is_writable=True)

    @classmethod
    def readonly(cls, pubkey: Pubkey, is_signer: bool = False) -> AccountMeta:
        return cls(pubkey=pubkey, is_signer=is_signer, is_writable=False)


@dataclass(frozen=True)
class Instruction:
    """A program id, the accounts it touches and the encoded payload."""

    program_id: Pubkey
    accounts: list[AccountMeta]
    data: bytes


def _write_tiers(writer: BorshWriter, tiers: Sequence[RewardTier]) -> None:
    writer.write_vec(tiers, lambda tier: tier.serialize(writer))


def _read_tiers(reader: BorshReader) -> list[RewardTier]:
    return reader.read_vec(lambda: RewardTier.deserialize(reader))


@dataclass
class InitializePool:
    """Create and initialize a reward pool account."""

    lock_time_sec: int
    max_stakers: int

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u64(self.lock_time_sec)
        writer.write_u64(self.max_stakers)

    @classmethod
    def _read(cls, reader: BorshReader) -> InitializePool:
        return cls(reader.read_u64(), reader.read_u64())


@dataclass
class AddVault:
    """Create a vault account and add it to the reward pool."""

    reward_period_sec: int
    is_enabled: bool
    tiers: list[RewardTier] = field(default_factory=list)

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u32(self.reward_period_sec)
        writer.write_bool(self.is_enabled)
        _write_tiers(writer, self.tiers)

    @classmethod
    def _read(cls, reader: BorshReader) -> AddVault:
        return cls(reader.read_u32(), reader.read_bool(), _read_tiers(reader))


@dataclass
class UpdateVault:
    """Change vault parameters; ``None`` leaves a parameter as it is."""

    reward_period_sec: Optional[int] = None
    is_enabled: Optional[bool] = None
    tiers: Optional[list[RewardTier]] = None

    def _write(self, writer: BorshWriter) -> None:
        writer.write_option(self.reward_period_sec, writer.write_u32)
        writer.write_option(self.is_enabled, writer.write_bool)
        writer.write_option(self.tiers, lambda tiers: _write_tiers(writer, tiers))

    @classmethod
    def _read(cls, reader: BorshReader) -> UpdateVault:
        return cls(
            reader.read_option(reader.read_u32),
            reader.read_option(reader.read_bool),
            reader.read_option(lambda: _read_tiers(reader)),
        )


@dataclass
class FillVault:
    """Fill a vault with rewards."""

    amount: int

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u64(self.amount)

    @classmethod
    def _read(cls, reader: BorshReader) -> FillVault:
        return cls(reader.read_u64())


@dataclass
class DepositMining:
    """Deposit liquidity into the user's mining account."""

    amount: int

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u64(self.amount)

    @classmethod
    def _read(cls, reader: BorshReader) -> DepositMining:
        return cls(reader.read_u64())


@dataclass
class _Empty:
    def _write(self, writer: BorshWriter) -> None:
        del writer

    @classmethod
    def _read(cls, reader: BorshReader):
        del reader
        return cls()


@dataclass
class WithdrawMining(_Empty):
    """Withdraw the whole stake and close the mining account."""


@dataclass
class Claim(_Empty):
    """Claim accrued rewards."""


@dataclass
class UpgradeMining:
    """Set a user's reward tier (administrator only)."""

    tier: int

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u8(self.tier)

    @classmethod
    def _read(cls, reader: BorshReader) -> UpgradeMining:
        return cls(reader.read_u8())


@dataclass
class InitializeRoot(_Empty):
    """Create and initialize a rewards root."""


@dataclass
class MigratePool:
    """Move a reward pool to the current layout."""

    max_stakers: int
    total_stakers: int

    def _write(self, writer: BorshWriter) -> None:
        writer.write_u64(self.max_stakers)
        writer.write_u64(self.total_stakers)

    @classmethod
    def _read(cls, reader: BorshReader) -> MigratePool:
        return cls(reader.read_u64(), reader.read_u64())


@dataclass
class MigrateMining(_Empty):
    """Move a mining account to the current layout."""


RewardsInstruction = Union[
    InitializePool,
    AddVault,
    UpdateVault,
    FillVault,
    DepositMining,
    WithdrawMining,
    Claim,
    UpgradeMining,
    InitializeRoot,
    MigratePool,
    MigrateMining,
]

_VARIANTS: tuple[type, ...] = (
    InitializePool,
    AddVault,
    UpdateVault,
    FillVault,
    DepositMining,
    WithdrawMining,
    Claim,
    UpgradeMining,
    InitializeRoot,
    MigratePool,
    MigrateMining,
)
_TAGS = {variant: tag for tag, variant in enumerate(_VARIANTS)}


def encode_instruction(instruction: RewardsInstruction) -> bytes:
    """Encode an instruction as a one-byte tag followed by its fields."""
    try:
        tag = _TAGS[type(instruction)]
    except KeyError:
        raise TypeError(f"not a rewards instruction: {instruction!r}") from None
    writer = BorshWriter()
    writer.write_u8(tag)
    instruction._write(writer)
    return writer.getvalue()


def decode_instruction(data: bytes) -> RewardsInstruction:
    """Decode instruction data; every byte must be consumed."""
    reader = BorshReader(data)
    try:
        tag = reader.read_u8()
        if tag >= len(_VARIANTS):
            raise CodecError(f"unknown instruction tag {tag}")
        instruction = _VARIANTS[tag]._read(reader)
    except CodecError as error:
        raise ProgramError(ProgramErrorKind.INVALID_INSTRUCTION_DATA, str(error)) from error
    if reader.remaining:
        raise ProgramError(
            ProgramErrorKind.INVALID_INSTRUCTION_DATA,
            f"{reader.remaining} unexpected trailing bytes",
        )
    return instruction


def _build(
    program_id: Pubkey, payload: RewardsInstruction, accounts: list[AccountMeta]
) -> Instruction:
    return Instruction(program_id, accounts, encode_instruction(payload))


def initialize_pool(
    program_id: Pubkey,
    root_account: Pubkey,
    reward_pool: Pubkey,
    reward_pool_spl: Pubkey,
    reward_pool_authority: Pubkey,
    liquidity_mint: Pubkey,
    payer: Pubkey,
    lock_time_sec: int,
    max_stakers: int,
) -> Instruction:
    """Build an ``InitializePool`` instruction."""
    accounts = [
        AccountMeta.readonly(root_account),
        AccountMeta.writable(reward_pool),
        AccountMeta.writable(reward_pool_spl),
        AccountMeta.readonly(reward_pool_authority),
        AccountMeta.readonly(liquidity_mint),
        AccountMeta.writable(payer, True),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    return _build(program_id, InitializePool(lock_time_sec, max_stakers), accounts)


def add_vault(
    program_id: Pubkey,
    rewards_root: Pubkey,
    reward_pool: Pubkey,
    reward_mint: Pubkey,
    vault: Pubkey,
    authority: Pubkey,
    reward_period_sec: int,
    tiers: Sequence[RewardTier],
) -> Instruction:
    """Build an ``AddVault`` instruction; the vault starts enabled."""
    accounts = [
        AccountMeta.readonly(rewards_root),
        AccountMeta.writable(reward_pool),
        AccountMeta.readonly(reward_mint),
        AccountMeta.writable(vault),
        AccountMeta.writable(authority, True),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    payload = AddVault(reward_period_sec=reward_period_sec, is_enabled=True, tiers=list(tiers))
    return _build(program_id, payload, accounts)


def update_vault(
    program_id: Pubkey,
    rewards_root: Pubkey,
    reward_pool: Pubkey,
    reward_mint: Pubkey,
    payer: Pubkey,
    reward_period_sec: Optional[int],
    is_enabled: Optional[bool],
    tiers: Optional[Sequence[RewardTier]],
) -> Instruction:
    """Build an ``UpdateVault`` instruction."""
    accounts = [
        AccountMeta.readonly(rewards_root),
        AccountMeta.writable(reward_pool),
        AccountMeta.readonly(reward_mint),
        AccountMeta.writable(payer, True),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
    ]
    payload = UpdateVault(
        reward_period_sec=reward_period_sec,
        is_enabled=is_enabled,
        tiers=None if tiers is None else list(tiers),
    )
    return _build(program_id, payload, accounts)


def fill_vault(
    program_id: Pubkey,
    reward_pool: Pubkey,
    reward_mint: Pubkey,
    vault: Pubkey,
    from_token_account: Pubkey,
    authority: Pubkey,
    amount: int,
) -> Instruction:
    """Build a ``FillVault`` instruction."""
    accounts = [
        AccountMeta.writable(reward_pool),
        AccountMeta.readonly(reward_mint),
        AccountMeta.writable(vault),
        AccountMeta.writable(from_token_account),
        AccountMeta.writable(authority, True),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
    ]
    return _build(program_id, FillVault(amount), accounts)


def deposit_mining(
    program_id: Pubkey,
    reward_pool: Pubkey,
    reward_pool_spl: Pubkey,
    liquidity_mint: Pubkey,
    mining: Pubkey,
    user_token_account: Pubkey,
    user: Pubkey,
    amount: int,
) -> Instruction:
    """Build a ``DepositMining`` instruction."""
    accounts = [
        AccountMeta.writable(reward_pool),
        AccountMeta.writable(reward_pool_spl),
        AccountMeta.readonly(liquidity_mint),
        AccountMeta.writable(mining),
        AccountMeta.writable(user_token_account),
        AccountMeta.writable(user, True),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    return _build(program_id, DepositMining(amount), accounts)


def withdraw_mining(
    program_id: Pubkey,
    reward_pool: Pubkey,
    reward_pool_spl: Pubkey,
    reward_pool_authority: Pubkey,
    liquidity_mint: Pubkey,
    mining: Pubkey,
    user_token_account: Pubkey,
    user: Pubkey,
) -> Instruction:
    """Build a ``WithdrawMining`` instruction."""
    accounts = [
        AccountMeta.writable(reward_pool),
        AccountMeta.writable(reward_pool_spl),
        AccountMeta.readonly(reward_pool_authority),
        AccountMeta.readonly(liquidity_mint),
        AccountMeta.writable(mining),
        AccountMeta.writable(user_token_account),
        AccountMeta.writable(user, True),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
    ]
    return _build(program_id, WithdrawMining(), accounts)


def upgrade_mining(
    program_id: Pubkey,
    rewards_root: Pubkey,
    reward_pool: Pubkey,
    mining: Pubkey,
    user: Pubkey,
    authority: Pubkey,
    tier: int,
) -> Instruction:
    """Build an ``UpgradeMining`` instruction."""
    accounts = [
        AccountMeta.readonly(rewards_root),
        AccountMeta.readonly(reward_pool),
        AccountMeta.writable(mining),
        AccountMeta.writable(user),
        AccountMeta.writable(authority, True),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
    ]
    return _build(program_id, UpgradeMining(tier), accounts)


def claim(
    program_id: Pubkey,
    reward_pool: Pubkey,
    reward_mint: Pubkey,
    vault: Pubkey,
    mining: Pubkey,
    user: Pubkey,
    user_reward_token: Pubkey,
) -> Instruction:
    """Build a ``Claim`` instruction."""
    _log.debug("reward_pool: %s", reward_pool)
    _log.debug("reward_mint: %s", reward_mint)
    _log.debug("vault: %s", vault)
    _log.debug("mining: %s", mining)
    _log.debug("user: %s", user)
    _log.debug("user_reward_token: %s", user_reward_token)

    accounts = [
        AccountMeta.writable(reward_pool),
        AccountMeta.readonly(reward_mint),
        AccountMeta.writable(vault),
        AccountMeta.writable(mining),
        AccountMeta.writable(user, True),
        AccountMeta.writable(user_reward_token),
        AccountMeta.readonly(TOKEN_PROGRAM_ID),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(CLOCK_SYSVAR_ID),
    ]
    return _build(program_id, Claim(), accounts)


def initialize_root(program_id: Pubkey, rewards_root: Pubkey, authority: Pubkey) -> Instruction:
    """Build an ``InitializeRoot`` instruction; the root account must sign."""
    accounts = [
        AccountMeta.writable(rewards_root, True),
        AccountMeta.writable(authority, True),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    return _build(program_id, InitializeRoot(), accounts)


def migrate_pool(
    program_id: Pubkey,
    root_account: Pubkey,
    reward_pool: Pubkey,
    payer: Pubkey,
    liquidity_mint: Pubkey,
    max_stakers: int,
    total_stakers: int,
) -> Instruction:
    """Build a ``MigratePool`` instruction."""
    accounts = [
        AccountMeta.readonly(root_account),
        AccountMeta.writable(reward_pool),
        AccountMeta.readonly(liquidity_mint),
        AccountMeta.writable(payer, True),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    return _build(program_id, MigratePool(max_stakers, total_stakers), accounts)


def migrate_mining(
    program_id: Pubkey,
    mining: Pubkey,
    root_account: Pubkey,
    reward_pool: Pubkey,
    payer: Pubkey,
    liquidity_mint: Pubkey,
) -> Instruction:
    """Build a ``MigrateMining`` instruction."""
    accounts = [
        AccountMeta.writable(mining),
        AccountMeta.readonly(root_account),
        AccountMeta.readonly(reward_pool),
        AccountMeta.readonly(liquidity_mint),
        AccountMeta.writable(payer, True),
        AccountMeta.readonly(SYSTEM_PROGRAM_ID),
        AccountMeta.readonly(RENT_SYSVAR_ID),
    ]
    return _build(program_id, MigrateMining(), accounts)