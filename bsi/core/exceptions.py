"""Exception taxonomy for the BSI core."""

from __future__ import annotations


class BSIError(Exception):
    """Base exception for the BSI core."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class IdentityNotFound(BSIError):
    """Raised when no user matches the email used to authenticate."""

    def __init__(self, message: str = "Identity not found. Please initiate evolution (Sign Up)."):
        super().__init__(message)


class IdentityExists(BSIError):
    """Raised when registering an email that is already taken."""

    def __init__(self, message: str = "Identity already exists in matrix."):
        super().__init__(message)


class EmailNotFound(BSIError):
    """Raised when a recovery request names an unknown email."""

    def __init__(self, message: str = "Email not found in registry."):
        super().__init__(message)


class RbacViolation(BSIError):
    """Raised when a role lacks the permission an operation requires."""

    def __init__(self, message: str = "RBAC Violation."):
        super().__init__(message)


class InvalidRecord(BSIError):
    """Raised when a record payload is not a usable mapping."""
    pass


class PersistenceFailure(BSIError):
    """Raised by persisters when a snapshot cannot be read or written."""
    pass


class PersistenceWarning(UserWarning):
    """Emitted when a mutation was applied in memory but could not be saved."""
