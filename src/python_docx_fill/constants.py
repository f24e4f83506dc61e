"""
Centralized constants for OOXML namespaces and placeholder defaults.

This module consolidates namespace URLs, content types, relationship types and
the default placeholder settings used by the scanner, planner and applier.
"""

# =============================================================================
# Word Processing Namespaces
# =============================================================================

# Main WordprocessingML namespace (Word 2007+)
WORD_NAMESPACE = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


# =============================================================================
# DrawingML Namespaces
# =============================================================================

A_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/main"
PIC_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/picture"

# Word Processing Drawing namespace (inline/anchor positioning)
WP_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"


# =============================================================================
# Package and Relationship Namespaces
# =============================================================================

PACKAGE_RELATIONSHIPS_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/content-types"

OFFICE_RELATIONSHIPS_NAMESPACE = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
)

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


# =============================================================================
# Relationship Types
# =============================================================================

REL_TYPE_OFFICE_DOCUMENT = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
)
REL_TYPE_HEADER = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/header"
REL_TYPE_FOOTER = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/footer"
REL_TYPE_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"


# =============================================================================
# Content Types
# =============================================================================

CT_DOCUMENT_MAIN = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"
)
CT_DOCUMENT_MACRO = "application/vnd.ms-word.document.macroEnabled.main+xml"
CT_TEMPLATE_MAIN = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.template.main+xml"
)
CT_TEMPLATE_MACRO = "application/vnd.ms-word.template.macroEnabledTemplate.main+xml"
CT_HEADER = "application/vnd.openxmlformats-officedocument.wordprocessingml.header+xml"
CT_FOOTER = "application/vnd.openxmlformats-officedocument.wordprocessingml.footer+xml"

SUPPORTED_MAIN_CONTENT_TYPES = frozenset(
    {CT_DOCUMENT_MAIN, CT_DOCUMENT_MACRO, CT_TEMPLATE_MAIN, CT_TEMPLATE_MACRO}
)

# Image extension -> content type
IMAGE_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
}


# =============================================================================
# Namespace Maps
# =============================================================================

NSMAP = {"w": WORD_NAMESPACE}

NSMAP_DRAWING = {
    "wp": WP_NAMESPACE,
    "a": A_NAMESPACE,
    "pic": PIC_NAMESPACE,
    "r": OFFICE_RELATIONSHIPS_NAMESPACE,
}


# =============================================================================
# Placeholder Defaults
# =============================================================================

DEFAULT_PLACEHOLDER_PATTERN = r"\{\{.*?\}\}"

# Image token embedded in a placeholder name: image:NAME|width:W|height:H
IMAGE_TOKEN_PATTERN = r"^image:([^|]+)\|width:(\d+)\|height:(\d+)$"

# Delimiters stripped from a match when the pattern has no capturing group
PLACEHOLDER_DELIMITERS = "{}[]<>"

# Characters of context shown on each side of a match
CONTEXT_CHARS_DEFAULT = 50

DEFAULT_BACKUP_SUFFIX = ".backup"

DEFAULT_IO_TIMEOUT_SECONDS = 30.0

# English Metric Units per pixel at 96 DPI
EMU_PER_PIXEL = 9525


# =============================================================================
# Helper Functions
# =============================================================================


def w(tag: str) -> str:
    """Create a fully qualified Word namespace tag.

    Example:
        >>> w("p")
        '{http://schemas.openxmlformats.org/wordprocessingml/2006/main}p'
    """
    return f"{{{WORD_NAMESPACE}}}{tag}"


def a(tag: str) -> str:
    """Create a fully qualified DrawingML main namespace tag."""
    return f"{{{A_NAMESPACE}}}{tag}"


def pic(tag: str) -> str:
    """Create a fully qualified DrawingML picture namespace tag."""
    return f"{{{PIC_NAMESPACE}}}{tag}"


def wp(tag: str) -> str:
    """Create a fully qualified Word Processing Drawing namespace tag."""
    return f"{{{WP_NAMESPACE}}}{tag}"


def r(tag: str) -> str:
    """Create a fully qualified Office Relationships namespace tag."""
    return f"{{{OFFICE_RELATIONSHIPS_NAMESPACE}}}{tag}"
