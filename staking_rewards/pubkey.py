"""Public keys and program-derived addresses."""

from __future__ import annotations

import abc
import hashlib
from dataclasses import dataclass
from typing import Sequence

from staking_rewards.errors import ProgramError, ProgramErrorKind

PUBKEY_BYTES = 32
MAX_SEED_LEN = 32
MAX_SEEDS = 16

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_PDA_MARKER = b"ProgramDerivedAddress"

# Edwards25519 field prime and curve constant.
_P = 2**255 - 19
_D = (-121665 * pow(121666, -1, _P)) % _P


def _b58encode(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_ALPHABET[remainder])
    padding = len(data) - len(data.lstrip(b"\0"))
    return "1" * padding + "".join(reversed(digits))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        digit = _ALPHABET.find(char)
        if digit < 0:
            raise ValueError(f"invalid base58 character {char!r}")
        number = number * 58 + digit
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    padding = len(text) - len(text.lstrip("1"))
    return b"\0" * padding + body


@dataclass(frozen=True)
class Pubkey:
    """A 32-byte account address."""

    value: bytes

    def __post_init__(self) -> None:
        raw = bytes(self.value)
        if len(raw) != PUBKEY_BYTES:
            raise ValueError(f"public key must be {PUBKEY_BYTES} bytes, got {len(raw)}")
        object.__setattr__(self, "value", raw)

    @classmethod
    def from_base58(cls, text: str) -> Pubkey:
        """Parse a base58 string."""
        return cls(_b58decode(text))

    @classmethod
    def default(cls) -> Pubkey:
        """The all-zero key."""
        return cls(bytes(PUBKEY_BYTES))

    def __str__(self) -> str:
        return _b58encode(self.value)

    def __repr__(self) -> str:
        return f"Pubkey({self})"

    def __bytes__(self) -> bytes:
        return self.value


SYSTEM_PROGRAM_ID = Pubkey.default()
TOKEN_PROGRAM_ID = Pubkey.from_base58("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
RENT_SYSVAR_ID = Pubkey.from_base58("SysvarRent111111111111111111111111111111111")
CLOCK_SYSVAR_ID = Pubkey.from_base58("SysvarC1ock11111111111111111111111111111111")


def is_on_curve(data: bytes) -> bool:
    """Whether 32 bytes decompress to a point on the ed25519 curve."""
    raw = bytes(data)
    if len(raw) != PUBKEY_BYTES:
        raise ValueError(f"expected {PUBKEY_BYTES} bytes, got {len(raw)}")
    y = (int.from_bytes(raw, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, -1, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Derive an off-curve address from seeds and a program id."""
    if len(seeds) > MAX_SEEDS:
        raise ProgramError(ProgramErrorKind.MAX_SEED_LENGTH_EXCEEDED)
    digest = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ProgramError(ProgramErrorKind.MAX_SEED_LENGTH_EXCEEDED)
        digest.update(bytes(seed))
    digest.update(bytes(program_id))
    digest.update(_PDA_MARKER)
    address = digest.digest()
    if is_on_curve(address):
        raise ProgramError(ProgramErrorKind.INVALID_SEEDS)
    return Pubkey(address)


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Find the first valid address and its bump, trying bumps from 255 down."""
    for bump in range(255, 0, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except ProgramError as error:
            if error.kind is not ProgramErrorKind.INVALID_SEEDS:
                raise
    raise ProgramError(
        ProgramErrorKind.INVALID_SEEDS, "Unable to find a viable program address bump seed"
    )


def find_authority_address(program_id: Pubkey, pubkey: Pubkey) -> tuple[Pubkey, int]:
    """Derive the authority address seeded by a single key."""
    return find_program_address([bytes(pubkey)], program_id)


class Pda(abc.ABC):
    """Something whose address is derived from seeds."""

    @abc.abstractmethod
    def raw_seeds(self) -> list[bytes]:
        """Seeds without the bump."""

    def find_address(self, program_id: Pubkey) -> tuple[Pubkey, int]:
        return find_program_address(self.raw_seeds(), program_id)

    def signing_seeds(self, bump: int) -> list[bytes]:
        return [*self.raw_seeds(), bytes([bump])]