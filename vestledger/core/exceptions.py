"""
vestledger Exception Hierarchy

All exceptions inherit from VestingError for easy catching.
"""

from typing import Optional


class VestingError(Exception):
    """Base exception for all vestledger errors"""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(VestingError):
    """Raised when schedule or registry inputs are malformed"""
    pass


class NonMonotonicScheduleError(ConfigurationError):
    """Raised when milestone timestamps are not strictly increasing"""
    pass


class LifecycleError(VestingError):
    """Raised when an operation is not permitted in the current lifecycle state"""
    pass


class AlreadyStartedError(LifecycleError):
    """Raised when start() is called on an already started vesting"""
    pass


class TransferFailure(VestingError):
    """Raised when an external asset transfer is rejected mid-settlement"""
    pass


class UnknownBeneficiaryError(VestingError):
    """Raised by strict lookups for a beneficiary absent from the schedule"""
    pass


class JournalError(VestingError):
    """Raised when disbursement journal operations fail"""
    pass


class StoreError(VestingError):
    """Raised when the state file cannot be read or written"""
    pass
