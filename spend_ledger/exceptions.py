"""Domain-specific exceptions for the spend ledger core."""

class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class EmptyNameError(ValidationError):
    """Raised when a category name is blank after trimming."""


class DuplicateError(ValidationError):
    """Raised when a category name collides case-insensitively with an existing one."""


class RecordNotFoundError(LookupError):
    """Raised when an entry or category cannot be located."""


class EditStateError(RuntimeError):
    """Raised when an edit operation is requested while no entry is being edited."""


class PersistenceError(IOError):
    """Raised by storage adapters when reading or writing a record fails."""
