from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    MALFORMED_INPUT = "malformed-input"
    AUTHORITY_REJECTED = "authority-rejected"
    AUTHORITY_UNREACHABLE = "authority-unreachable"
    STORAGE_FAILURE = "storage-failure"
    CONSTRAINT_VIOLATION = "constraint-violation"
    INVALID_TRANSITION = "invalid-transition"

    def __str__(self) -> str:
        return self.value


class PaygateError(Exception):
    """Base for errors raised by this package."""


class ProofError(PaygateError):
    """A proof pipeline action was rejected. ``message`` is safe to show to the user."""

    kind: FailureKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConstraintViolation(ProofError):
    kind = FailureKind.CONSTRAINT_VIOLATION


class StorageFailure(ProofError):
    kind = FailureKind.STORAGE_FAILURE


class InvalidTransition(ProofError):
    kind = FailureKind.INVALID_TRANSITION


class NoPendingUpload(InvalidTransition):
    """``confirm()`` was called while nothing is uploaded and awaiting confirmation."""


class StorageError(PaygateError):
    """The object storage backend rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvoiceNotFound(PaygateError):
    pass


class InvoiceNotPending(PaygateError):
    pass
