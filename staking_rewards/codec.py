"""Binary layout of account state: little-endian integers, length-prefixed vectors."""

from __future__ import annotations

import enum
import logging
import struct
from typing import Callable, Iterable, Optional, Protocol, TypeVar

from staking_rewards.errors import ProgramError, ProgramErrorKind
from staking_rewards.pubkey import PUBKEY_BYTES, Pubkey

_log = logging.getLogger(__name__)

T = TypeVar("T")

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class AccountType(enum.IntEnum):
    """Kind of account managed by the program; zero means not yet initialized."""

    UNINITIALIZED = 0
    REWARDS_ROOT = 1
    REWARD_POOL = 2
    MINING = 3


class CodecError(ValueError):
    """Raised when bytes cannot be decoded or a value cannot be encoded."""


class BorshReader:
    """Reads values one after another from a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise CodecError(
                f"unexpected end of data: need {count} bytes at offset {self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u32(self) -> int:
        return _U32.unpack(self._take(_U32.size))[0]

    def read_u64(self) -> int:
        return _U64.unpack(self._take(_U64.size))[0]

    def read_bool(self) -> bool:
        value = self.read_u8()
        if value not in (0, 1):
            raise CodecError(f"invalid bool value {value}")
        return value == 1

    def read_pubkey(self) -> Pubkey:
        return Pubkey(self._take(PUBKEY_BYTES))

    def read_account_type(self) -> AccountType:
        value = self.read_u8()
        try:
            return AccountType(value)
        except ValueError:
            raise CodecError(f"invalid account type {value}") from None

    def read_vec(self, read_item: Callable[[], T]) -> list[T]:
        """Read a u32 count followed by that many items."""
        count = self.read_u32()
        return [read_item() for _ in range(count)]

    def read_option(self, read_item: Callable[[], T]) -> Optional[T]:
        tag = self.read_u8()
        if tag == 0:
            return None
        if tag == 1:
            return read_item()
        raise CodecError(f"invalid option tag {tag}")


class BorshWriter:
    """Accumulates encoded values."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @staticmethod
    def _check_range(value: int, bits: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise CodecError(f"expected an integer, got {value!r}")
        if not 0 <= value < (1 << bits):
            raise CodecError(f"value {value} does not fit in u{bits}")
        return value

    def write_u8(self, value: int) -> None:
        self._buffer.append(self._check_range(value, 8))

    def write_u32(self, value: int) -> None:
        self._buffer += _U32.pack(self._check_range(value, 32))

    def write_u64(self, value: int) -> None:
        self._buffer += _U64.pack(self._check_range(value, 64))

    def write_bool(self, value: bool) -> None:
        self._buffer.append(1 if value else 0)

    def write_pubkey(self, key: Pubkey) -> None:
        self._buffer += bytes(key)

    def write_account_type(self, value: AccountType) -> None:
        try:
            account_type = AccountType(value)
        except ValueError:
            raise CodecError(f"invalid account type {value!r}") from None
        self.write_u8(int(account_type))

    def write_vec(self, items: Iterable[T], write_item: Callable[[T], None]) -> None:
        """Write a u32 count followed by each item."""
        values = list(items)
        self.write_u32(len(values))
        for item in values:
            write_item(item)

    def write_option(self, value: Optional[T], write_item: Callable[[T], None]) -> None:
        if value is None:
            self.write_u8(0)
        else:
            self.write_u8(1)
            write_item(value)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class _State(Protocol):
    def is_initialized(self) -> bool: ...


S = TypeVar("S", bound=_State)


def _pack_state(serialize: Callable[[BorshWriter], None], length: int) -> bytes:
    """Encode a state into exactly ``length`` bytes, zero padded."""
    writer = BorshWriter()
    serialize(writer)
    data = writer.getvalue()
    if len(data) > length:
        raise ProgramError(
            ProgramErrorKind.ACCOUNT_DATA_TOO_SMALL,
            f"state needs {len(data)} bytes, account holds {length}",
        )
    return data + bytes(length - len(data))


def _unpack_state(data: bytes, length: int, deserialize: Callable[[BorshReader], S]) -> S:
    """Decode an initialized state from account data of exactly ``length`` bytes."""
    raw = bytes(data)
    if len(raw) != length:
        raise ProgramError(
            ProgramErrorKind.INVALID_ACCOUNT_DATA,
            f"expected {length} bytes of account data, got {len(raw)}",
        )
    try:
        state = deserialize(BorshReader(raw))
    except CodecError as error:
        _log.info("Failed to deserialize")
        _log.info("%s", error)
        raise ProgramError(ProgramErrorKind.INVALID_ACCOUNT_DATA) from error
    if not state.is_initialized():
        raise ProgramError(ProgramErrorKind.UNINITIALIZED_ACCOUNT)
    return state