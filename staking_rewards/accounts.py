"""Account records, sysvars, account checks and system-level account operations."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from staking_rewards.errors import (
    EverlendError,
    EverlendErrorCode,
    ProgramError,
    ProgramErrorKind,
)
from staking_rewards.pubkey import (
    CLOCK_SYSVAR_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    Pubkey,
)

_log = logging.getLogger(__name__)

ACCOUNT_STORAGE_OVERHEAD = 128

_RENT_LAYOUT = struct.Struct("<QdB")
_CLOCK_LAYOUT = struct.Struct("<QqQQq")


@dataclass(eq=False)
class AccountInfo:
    """An account passed to an instruction."""

    key: Pubkey
    owner: Pubkey = field(default_factory=Pubkey.default)
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    is_signer: bool = False
    is_writable: bool = False


def _check_sysvar(account: AccountInfo, expected: Pubkey, layout: struct.Struct) -> tuple:
    if account.key != expected:
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT, f"expected sysvar {expected}")
    if len(account.data) < layout.size:
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT, "sysvar data too short")
    return layout.unpack_from(bytes(account.data))


@dataclass(frozen=True)
class Rent:
    """Rent parameters."""

    lamports_per_byte_year: int = 3480
    exemption_threshold: float = 2.0
    burn_percent: int = 50

    def minimum_balance(self, data_len: int) -> int:
        """Lamports needed for an account of ``data_len`` bytes to be rent exempt."""
        return int(
            (ACCOUNT_STORAGE_OVERHEAD + data_len)
            * self.lamports_per_byte_year
            * self.exemption_threshold
        )

    def is_exempt(self, lamports: int, data_len: int) -> bool:
        return lamports >= self.minimum_balance(data_len)

    @classmethod
    def from_account(cls, account: AccountInfo) -> Rent:
        """Read rent parameters from the rent sysvar account."""
        return cls(*_check_sysvar(account, RENT_SYSVAR_ID, _RENT_LAYOUT))

    def to_bytes(self) -> bytes:
        return _RENT_LAYOUT.pack(
            self.lamports_per_byte_year, self.exemption_threshold, self.burn_percent
        )


@dataclass(frozen=True)
class Clock:
    """Cluster time."""

    slot: int = 0
    epoch_start_timestamp: int = 0
    epoch: int = 0
    leader_schedule_epoch: int = 0
    unix_timestamp: int = 0

    @classmethod
    def from_account(cls, account: AccountInfo) -> Clock:
        """Read the clock from the clock sysvar account."""
        return cls(*_check_sysvar(account, CLOCK_SYSVAR_ID, _CLOCK_LAYOUT))

    def to_bytes(self) -> bytes:
        return _CLOCK_LAYOUT.pack(
            self.slot,
            self.epoch_start_timestamp,
            self.epoch,
            self.leader_schedule_epoch,
            self.unix_timestamp,
        )


class _HasInitialized(Protocol):
    def is_initialized(self) -> bool: ...


class _HasUninitialized(Protocol):
    def is_uninitialized(self) -> bool: ...


def assert_signer(account: AccountInfo) -> None:
    if not account.is_signer:
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)


def assert_initialized(state: _HasInitialized) -> None:
    if not state.is_initialized():
        raise ProgramError(ProgramErrorKind.UNINITIALIZED_ACCOUNT)


def assert_uninitialized(state: _HasUninitialized) -> None:
    if not state.is_uninitialized():
        raise ProgramError(ProgramErrorKind.ACCOUNT_ALREADY_INITIALIZED)


def assert_owned_by(account: AccountInfo, owner: Pubkey) -> None:
    if account.owner != owner:
        _log.info(
            "Assert %s owner error. Got %s Expected %s", account.key, account.owner, owner
        )
        raise EverlendError(EverlendErrorCode.INVALID_ACCOUNT_OWNER)


def assert_account_key(account: AccountInfo, key: Pubkey) -> None:
    if account.key != key:
        _log.info("Assert account error. Got %s Expected %s", account.key, key)
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)


def assert_rent_exempt(rent: Rent, account: AccountInfo) -> None:
    if not rent.is_exempt(account.lamports, len(account.data)):
        _log.info("%d", rent.minimum_balance(len(account.data)))
        raise ProgramError(ProgramErrorKind.ACCOUNT_NOT_RENT_EXEMPT)


def assert_non_zero_amount(amount: int) -> None:
    if amount == 0:
        raise EverlendError(EverlendErrorCode.ZERO_AMOUNT)


class AccountLoader:
    """Takes accounts one by one, checking each as it is taken."""

    def __init__(self, accounts: Iterable[AccountInfo]) -> None:
        items = list(accounts)
        self._entries = enumerate(items)
        self._remaining = len(items)

    def _next(self) -> tuple[int, AccountInfo]:
        try:
            entry = next(self._entries)
        except StopIteration:
            raise ProgramError(ProgramErrorKind.NOT_ENOUGH_ACCOUNT_KEYS) from None
        self._remaining -= 1
        return entry

    def next_uninitialized(self) -> AccountInfo:
        """Next account, which must not be owned by anyone yet."""
        idx, account = self._next()
        if account.owner == Pubkey.default():
            return account
        _log.info("Account #%d:%s already initialized", idx, account.key)
        raise ProgramError(ProgramErrorKind.ACCOUNT_ALREADY_INITIALIZED)

    def next_with_owner(self, owner: Pubkey) -> AccountInfo:
        idx, account = self._next()
        if account.owner == owner:
            return account
        _log.info(
            "Account #%d:%s owner error. Got %s Expected %s",
            idx,
            account.key,
            account.owner,
            owner,
        )
        raise EverlendError(EverlendErrorCode.INVALID_ACCOUNT_OWNER)

    def next_with_key(self, key: Pubkey) -> AccountInfo:
        idx, account = self._next()
        if account.key == key:
            return account
        _log.info("Account #%d:%s assert error. Expected %s", idx, account.key, key)
        raise ProgramError(ProgramErrorKind.INVALID_ARGUMENT)

    def next_signer(self) -> AccountInfo:
        idx, account = self._next()
        if account.is_signer:
            return account
        _log.info("Account #%d:%s missing signature", idx, account.key)
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)

    def next_optional(self, owner: Pubkey) -> AccountInfo:
        """Next account, either unowned or owned by ``owner``."""
        idx, account = self._next()
        if account.owner in (Pubkey.default(), owner):
            return account
        _log.info(
            "Account #%d:%s owner error. Got %s Expected unitialized or %s",
            idx,
            account.key,
            account.owner,
            owner,
        )
        raise EverlendError(EverlendErrorCode.INVALID_ACCOUNT_OWNER)

    def next_unchecked(self) -> AccountInfo:
        return self._next()[1]

    def has_more(self) -> bool:
        return self._remaining > 0


def _resize(account: AccountInfo, new_len: int) -> None:
    current = len(account.data)
    if new_len > current:
        account.data.extend(bytes(new_len - current))
    else:
        del account.data[new_len:]


def transfer_lamports(source: AccountInfo, dest: AccountInfo, lamports: int) -> None:
    """Move lamports from a signing account to another account."""
    if not source.is_signer:
        raise ProgramError(ProgramErrorKind.MISSING_REQUIRED_SIGNATURE)
    if source.lamports < lamports:
        raise ProgramError(ProgramErrorKind.INSUFFICIENT_FUNDS)
    source.lamports -= lamports
    dest.lamports += lamports


def create_account(
    program_id: Pubkey, payer: AccountInfo, account: AccountInfo, rent: Rent, space: int
) -> None:
    """Fund a fresh account to rent exemption, size it and assign it to ``program_id``."""
    if account.lamports or account.data or account.owner != SYSTEM_PROGRAM_ID:
        raise ProgramError(
            ProgramErrorKind.ACCOUNT_ALREADY_INITIALIZED, f"account {account.key} already in use"
        )
    transfer_lamports(payer, account, rent.minimum_balance(space))
    account.data = bytearray(space)
    account.owner = program_id


def realloc_with_rent(
    account: AccountInfo, payer: AccountInfo, rent: Rent, new_len: int
) -> None:
    """Resize an account, topping it up from ``payer`` to stay rent exempt."""
    min_balance = rent.minimum_balance(new_len)
    if account.lamports < min_balance:
        transfer_lamports(payer, account, min_balance - account.lamports)
    _resize(account, new_len)


def close_account(source: AccountInfo, dest: AccountInfo) -> None:
    """Move all lamports to ``dest`` and hand the emptied account back to the system."""
    dest.lamports += source.lamports
    source.lamports = 0
    source.owner = SYSTEM_PROGRAM_ID
    _resize(source, 0)