from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class ScopeNotFoundError(NotFoundError):
    """Raised when a number is requested for a scope whose parent record does not exist."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class SequenceError(Exception):
    """Base class for failures to assign a sequence number.

    These are infrastructure failures, not caller mistakes. The whole create
    operation can be retried safely by the client.
    """


class PersistenceError(SequenceError):
    """Raised when the durable store fails for a reason unrelated to numbering."""

    def __init__(self, message: str = "Durable store operation failed") -> None:
        super().__init__(message)


class CounterStoreError(SequenceError):
    """Raised when the fast counter store is unreachable or returns garbage."""

    def __init__(self, message: str = "Counter store operation failed") -> None:
        super().__init__(message)


class AllocationExhaustedError(SequenceError):
    """Raised when every allocation attempt collided with an already persisted number."""

    def __init__(self, scope_key: str, attempts: int) -> None:
        super().__init__(f"Could not allocate a number in '{scope_key}' after {attempts} attempts")
        self.scope_key = scope_key
        self.attempts = attempts


class AmbiguousCommitError(SequenceError):
    """Raised when an insert timed out and its outcome could not be determined."""

    def __init__(self, scope_key: str, number: int) -> None:
        super().__init__(f"Outcome of insert for number {number} in '{scope_key}' is unknown")
        self.scope_key = scope_key
        self.number = number


class DuplicateNumberError(Exception):
    """Durable store signal: the (scope, number) pair is already taken."""

    def __init__(self, scope_key: str, number: int) -> None:
        super().__init__(f"Number {number} already exists in '{scope_key}'")
        self.scope_key = scope_key
        self.number = number


class DuplicateEntityError(Exception):
    """Durable store signal: an entity with the same id is already persisted."""
