"""Error types raised by the rewards program."""

from __future__ import annotations

import enum
import logging

_log = logging.getLogger(__name__)


class ProgramErrorKind(enum.Enum):
    """Generic failure categories a program instruction can report."""

    CUSTOM = "Custom program error"
    INVALID_ARGUMENT = "The arguments provided to a program instruction were invalid"
    INVALID_INSTRUCTION_DATA = "An instruction's data contents was invalid"
    INVALID_ACCOUNT_DATA = "An account's data contents was invalid"
    ACCOUNT_DATA_TOO_SMALL = "An account's data was too small"
    INSUFFICIENT_FUNDS = "An account's balance was too small to complete the instruction"
    INCORRECT_PROGRAM_ID = "The account did not have the expected program id"
    MISSING_REQUIRED_SIGNATURE = "A signature was required but not found"
    ACCOUNT_ALREADY_INITIALIZED = "An initialize instruction was sent to an account that has already been initialized"
    UNINITIALIZED_ACCOUNT = "An attempt to operate on an account that hasn't been initialized"
    NOT_ENOUGH_ACCOUNT_KEYS = "The instruction expected additional account keys"
    MAX_SEED_LENGTH_EXCEEDED = "Length of the seed is too long for address generation"
    INVALID_SEEDS = "Provided seeds do not result in a valid address"
    ACCOUNT_NOT_RENT_EXEMPT = "An account does not have enough lamports to be rent-exempt"
    INVALID_ACCOUNT_OWNER = "Invalid account owner"


class ProgramError(Exception):
    """A failure reported by an instruction."""

    def __init__(self, kind: ProgramErrorKind, message: str | None = None) -> None:
        self.kind = ProgramErrorKind(kind)
        self.message = message or self.kind.value
        super().__init__(self.message)


class EverlendErrorCode(enum.IntEnum):
    """Program-specific error codes carried by custom errors."""

    INVALID_ACCOUNT_OWNER = 0
    MATH_OVERFLOW = 1
    ZERO_AMOUNT = 2
    NOT_IMPLEMENTED = 3
    INVALID_REWARD_VAULT = 4
    INVALID_REWARD_TIER = 5
    LOCK_TIME_STILL_ACTIVE = 6
    POOL_IS_FULL = 7

    def message(self) -> str:
        """Human-readable description of the code."""
        return _MESSAGES[self]


_MESSAGES = {
    EverlendErrorCode.INVALID_ACCOUNT_OWNER: "Input account owner",
    EverlendErrorCode.MATH_OVERFLOW: "Math operation overflow",
    EverlendErrorCode.ZERO_AMOUNT: "Amount cannot be zero",
    EverlendErrorCode.NOT_IMPLEMENTED: "Instruction not implemented",
    EverlendErrorCode.INVALID_REWARD_VAULT: "Invalid reward vault",
    EverlendErrorCode.INVALID_REWARD_TIER: "Invalid reward tier",
    EverlendErrorCode.LOCK_TIME_STILL_ACTIVE: "Lock time is still active",
    EverlendErrorCode.POOL_IS_FULL: "Pool is full",
}


class EverlendError(ProgramError):
    """A custom program error identified by an :class:`EverlendErrorCode`."""

    def __init__(self, code: EverlendErrorCode | int) -> None:
        self.code = EverlendErrorCode(code)
        super().__init__(ProgramErrorKind.CUSTOM, self.code.message())
        _log.debug("Error: %s", self.message)