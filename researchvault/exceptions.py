"""Custom exceptions for Research Vault operations."""


class VaultError(Exception):
    """Base exception for Research Vault errors."""

    pass


class ValidationError(VaultError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(VaultError):
    """Raised when a document, asset or tag is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} with ID '{resource_id}' not found"
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id


class DuplicateError(VaultError):
    """Raised when attempting to create a duplicate resource."""

    def __init__(self, resource_type: str, field: str, value: str):
        message = f"{resource_type} with {field} '{value}' already exists"
        super().__init__(message)
        self.resource_type = resource_type
        self.field = field
        self.value = value


class DatabaseError(VaultError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class AssetIOError(VaultError):
    """Raised when asset bytes cannot be read or written.

    Kept distinct from a hash mismatch so callers can tell "could not check"
    apart from "checked and failed".
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.path = path
        self.original_error = original_error


class ScanAbortedError(VaultError):
    """Raised when a full integrity scan could not run to completion."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class BackupError(VaultError):
    """Raised when a backup archive cannot be written or restored."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error
