"""
Custom exception classes for python_docx_fill package.

Every error carries a human-readable message, the operation context it was
raised in (e.g. "replacement validation", "file reading") and, where one
applies, the path of the file being processed.
"""

from __future__ import annotations

import zipfile
from enum import Enum
from typing import TYPE_CHECKING

from lxml import etree

if TYPE_CHECKING:
    from .results import ReplacementValidationResult


class ErrorKind(str, Enum):
    """Classification of engine errors."""

    PACKAGE_CORRUPT = "package_corrupt"
    UNSUPPORTED_PART = "unsupported_part"
    INVALID_PATTERN = "invalid_pattern"
    UNMAPPED_PLACEHOLDER = "unmapped_placeholder"
    FILE_NOT_FOUND = "file_not_found"
    FILE_ACCESS_DENIED = "file_access_denied"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class FileOperation(str, Enum):
    """File system operation that was denied."""

    READ = "read"
    WRITE = "write"
    CREATE = "create"
    DELETE = "delete"


class DocxFillError(Exception):
    """Base exception for all python_docx_fill errors.

    Attributes:
        message: Human-readable description
        context: The operation that failed (e.g. "file reading")
        file_path: The file being processed, if any
        kind: The ErrorKind of this error
        critical: Whether the error should halt a whole batch
    """

    kind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        context: str | None = None,
        file_path: str | None = None,
        critical: bool = False,
    ) -> None:
        self.message = message
        self.context = context
        self.file_path = str(file_path) if file_path is not None else None
        self.critical = critical
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message
        if self.context:
            msg = f"{self.context}: {msg}"
        if self.file_path:
            msg += f" [{self.file_path}]"
        return msg


class PackageCorruptError(DocxFillError):
    """Raised when a .docx archive or one of its XML parts is not well-formed."""

    kind = ErrorKind.PACKAGE_CORRUPT


class UnsupportedPartError(DocxFillError):
    """Raised when a part's content model is not a supported document type."""

    kind = ErrorKind.UNSUPPORTED_PART


class InvalidPatternError(DocxFillError):
    """Raised when a placeholder pattern is empty, invalid or ambiguous.

    Attributes:
        pattern: The offending pattern
    """

    kind = ErrorKind.INVALID_PATTERN

    def __init__(self, message: str, pattern: str | None = None) -> None:
        self.pattern = pattern
        super().__init__(message, context="pattern validation")


class UnmappedPlaceholderError(DocxFillError):
    """Raised in strict mode when placeholders have no replacement value.

    Attributes:
        names: The unmapped placeholder names
        validation: The full validation result, when raised by batch validation
    """

    kind = ErrorKind.UNMAPPED_PLACEHOLDER

    def __init__(
        self,
        names: list[str],
        validation: ReplacementValidationResult | None = None,
        file_path: str | None = None,
    ) -> None:
        self.names = list(names)
        self.validation = validation
        joined = ", ".join(self.names)
        super().__init__(
            f"No replacement provided for placeholder(s): {joined}",
            context="replacement validation",
            file_path=file_path,
        )


class TemplateNotFoundError(DocxFillError):
    """Raised when a template file does not exist."""

    kind = ErrorKind.FILE_NOT_FOUND


class FileAccessError(DocxFillError):
    """Raised when a file cannot be read, written, created or deleted.

    Attributes:
        operation: The FileOperation that was denied
    """

    kind = ErrorKind.FILE_ACCESS_DENIED

    def __init__(
        self,
        message: str,
        operation: FileOperation,
        context: str | None = None,
        file_path: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, context=context, file_path=file_path)


class OperationTimeoutError(DocxFillError):
    """Raised when an operation did not finish within the configured timeout."""

    kind = ErrorKind.TIMEOUT


class OperationCancelledError(DocxFillError):
    """Raised for files that were not started because the batch was cancelled."""

    kind = ErrorKind.CANCELLED


class ConfigurationError(DocxFillError):
    """Raised when engine configuration is invalid."""

    kind = ErrorKind.CONFIGURATION


class UnexpectedError(DocxFillError):
    """Wraps an exception the engine did not anticipate.

    Attributes:
        original: The wrapped exception
    """

    kind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        original: BaseException,
        context: str | None = None,
        file_path: str | None = None,
        critical: bool = False,
    ) -> None:
        self.original = original
        super().__init__(
            f"{type(original).__name__}: {original}",
            context=context,
            file_path=file_path,
            critical=critical,
        )


CRITICAL_EXCEPTIONS = (MemoryError, RecursionError)


def is_critical(exc: BaseException) -> bool:
    """Return True if the exception should halt a whole batch."""
    if isinstance(exc, DocxFillError):
        return exc.critical
    return isinstance(exc, CRITICAL_EXCEPTIONS)


def wrap_exception(
    exc: BaseException,
    context: str,
    file_path: str | None = None,
    operation: FileOperation = FileOperation.READ,
) -> DocxFillError:
    """Map an arbitrary exception onto a DocxFillError.

    Errors that are already DocxFillError instances are returned unchanged.

    Args:
        exc: The exception to classify
        context: Operation context (e.g. "file reading")
        file_path: File being processed
        operation: File operation to report for permission errors

    Returns:
        A DocxFillError describing the failure
    """
    if isinstance(exc, DocxFillError):
        return exc
    if isinstance(exc, FileNotFoundError):
        return TemplateNotFoundError(
            f"File not found: {exc.filename or file_path}", context=context, file_path=file_path
        )
    if isinstance(exc, PermissionError):
        return FileAccessError(
            f"Access denied ({operation.value}): {exc.filename or file_path}",
            operation=operation,
            context=context,
            file_path=file_path,
        )
    if isinstance(exc, zipfile.BadZipFile | etree.XMLSyntaxError):
        return PackageCorruptError(str(exc), context=context, file_path=file_path)
    if isinstance(exc, TimeoutError):
        return OperationTimeoutError(str(exc) or "Operation timed out", context, file_path)
    if isinstance(exc, OSError):
        return FileAccessError(
            f"File operation failed: {exc}",
            operation=operation,
            context=context,
            file_path=file_path,
        )
    return UnexpectedError(exc, context=context, file_path=file_path, critical=is_critical(exc))
