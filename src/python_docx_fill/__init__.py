"""
python_docx_fill - Scan and fill placeholders in Word documents.

This package finds placeholder tokens such as ``{{NAME}}`` in .docx files,
even when Word has split a token across several formatting runs, and replaces
them with text or images while leaving the surrounding formatting, tables,
headers and footers intact.

Example:
    >>> from python_docx_fill import PlaceholderEngine, ReplacementMap
    >>> engine = PlaceholderEngine()
    >>> scan = engine.scan(["offer.docx"])
    >>> [p.name for p in scan.placeholders]
    ['NAME', 'DATE']
    >>> result = engine.replace(["offer.docx"], ReplacementMap({"NAME": "Alice", "DATE": "May 1"}))
    >>> result.total_replacements
    2
"""

__version__ = "0.1.0"
__all__ = [
    "PlaceholderEngine",
    "EngineConfig",
    "ReplaceOptions",
    "OOXMLPackage",
    "fill_python_docx",
    "discover_templates",
    # Models
    "TemplateFile",
    "Placeholder",
    "PlaceholderKind",
    "PlaceholderLocation",
    "ReplacementMap",
    "TextValue",
    "ImageValue",
    # Results
    "PlaceholderScanResult",
    "PlaceholderStatistics",
    "ScanError",
    "ReplacementValidationResult",
    "ValidationIssue",
    "ReplaceResult",
    "FileReplaceResult",
    "ReplacementPreview",
    "BackupResult",
    "FileState",
    # Errors
    "DocxFillError",
    "ErrorKind",
    "PackageCorruptError",
    "UnsupportedPartError",
    "InvalidPatternError",
    "UnmappedPlaceholderError",
    "TemplateNotFoundError",
    "FileAccessError",
    "OperationTimeoutError",
    "OperationCancelledError",
    "ConfigurationError",
    "UnexpectedError",
]

from .backup import FileState
from .compat import fill_python_docx
from .config import EngineConfig, ReplaceOptions
from .discovery import discover_templates
from .engine import PlaceholderEngine
from .errors import (
    ConfigurationError,
    DocxFillError,
    ErrorKind,
    FileAccessError,
    InvalidPatternError,
    OperationCancelledError,
    OperationTimeoutError,
    PackageCorruptError,
    TemplateNotFoundError,
    UnexpectedError,
    UnmappedPlaceholderError,
    UnsupportedPartError,
)
from .models import (
    ImageValue,
    Placeholder,
    PlaceholderKind,
    PlaceholderLocation,
    ReplacementMap,
    TemplateFile,
    TextValue,
)
from .package import OOXMLPackage
from .results import (
    BackupResult,
    FileReplaceResult,
    PlaceholderScanResult,
    PlaceholderStatistics,
    ReplaceResult,
    ReplacementPreview,
    ReplacementValidationResult,
    ScanError,
    ValidationIssue,
)
