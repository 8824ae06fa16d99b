"""
Custom Exceptions Module.

This module defines the custom exceptions used throughout the invoice
emissions system. Missing invoice fields are never exceptions: the
extraction core reports them as absent values. Exceptions are reserved
for collaborator failures, broken configuration and contract violations.

Exception Hierarchy:
    EcoInvoiceError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   └── InputFileNotFoundError
    ├── OCRError
    │   ├── OCRBackendNotAvailableError
    │   └── OCRProcessingError
    ├── ConfigurationError
    │   └── RuleTableError
    └── FinanceError
        └── InvalidAssumptionError
"""


class EcoInvoiceError(Exception):
    """
    Base exception for all invoice emissions errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(EcoInvoiceError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".doc", [".txt"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class InputFileNotFoundError(InputError):
    """Raised when an input file cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


# =============================================================================
# OCR ERRORS
# =============================================================================

class OCRError(EcoInvoiceError):
    """Base exception for OCR collaborator errors."""
    pass


class OCRBackendNotAvailableError(OCRError):
    """Raised when the configured OCR backend is not registered."""

    def __init__(self, backend_name: str):
        message = f"OCR backend not available: {backend_name}"
        details = {"backend": backend_name}
        super().__init__(message, details)


class OCRProcessingError(OCRError):
    """Raised when an OCR backend fails to produce text."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"OCR processing failed for: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(EcoInvoiceError):
    """Base exception for configuration errors."""
    pass


class RuleTableError(ConfigurationError):
    """Raised when a category or unit rule table is malformed."""

    def __init__(self, source: str, reason: str = None):
        message = f"Invalid rule table: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# FINANCE ERRORS
# =============================================================================

class FinanceError(EcoInvoiceError):
    """Base exception for financial calculation errors."""
    pass


class InvalidAssumptionError(FinanceError):
    """
    Raised when a calculation is called with an input outside its domain.

    Example:
        >>> raise InvalidAssumptionError("lifetime_years", -1, "must not be negative")
    """

    def __init__(self, field: str, value, reason: str = None):
        message = f"Invalid value for '{field}'"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'EcoInvoiceError',
    'InputError',
    'UnsupportedFileTypeError',
    'InputFileNotFoundError',
    'OCRError',
    'OCRBackendNotAvailableError',
    'OCRProcessingError',
    'ConfigurationError',
    'RuleTableError',
    'FinanceError',
    'InvalidAssumptionError',
]
