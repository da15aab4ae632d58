class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when the caller's role set does not allow an action."""


class StoreError(DomainError):
    """Raised when the store cannot complete an operation (I/O, timeout).

    Callers must treat it as a failure of the whole operation and may retry;
    it never means success and never means entitlement.
    """

    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class RecordDecodeError(DomainError):
    """Raised when a persisted record has missing or malformed fields."""
