"""Exception hierarchy for ledgerbot."""

from ledgerbot.constants import AMOUNT_HINT


class LedgerBotError(Exception):
    """Base class for all ledgerbot errors."""


class ClassificationError(LedgerBotError):
    """Raised when a message cannot be turned into a ledger entry.

    The message is meant to be shown to the user as guidance.
    """


class NoAmountFoundError(ClassificationError):
    """Raised when the text has no standalone integer to use as the amount."""

    def __init__(self, message: str = AMOUNT_HINT) -> None:
        super().__init__(message)


class InvalidAmountError(ClassificationError):
    """Raised when the amount found is not a positive integer."""


class InvalidDateCandidateError(LedgerBotError):
    """Raised internally when a day/month pair is not a real calendar date."""


class TransportFaultError(LedgerBotError):
    """Raised when a Bot API call fails or returns malformed data."""


class StoreError(LedgerBotError):
    """Raised when the ledger store cannot complete an operation."""


class InstanceLockedError(LedgerBotError):
    """Raised when another live process holds the instance lock."""

    def __init__(self, pid: int, lock_file: str) -> None:
        super().__init__(
            f"Another bot instance is already running (PID {pid}). "
            f"Stop that process or delete {lock_file}"
        )
        self.pid = pid
        self.lock_file = lock_file
