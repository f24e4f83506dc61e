"""
Compatibility helpers for integrating with python-docx.

This module lets documents built or loaded with python-docx be filled in
memory, without saving to disk in between.
"""

from __future__ import annotations

import io
import logging
import time
from typing import Any

from .applier import ReplacementApplier
from .config import EngineConfig
from .errors import is_critical, wrap_exception
from .models.replacement import ReplacementMap
from .package import OOXMLPackage
from .planner import ReplacementPlanner
from .results import FileReplaceResult
from .scanner import compile_pattern

logger = logging.getLogger(__name__)

IN_MEMORY_PATH = "<python-docx>"


def fill_python_docx(
    python_docx_doc: Any,
    replacement_map: ReplacementMap | dict[str, Any],
    config: EngineConfig | None = None,
) -> tuple[Any, FileReplaceResult]:
    """Fill placeholders in a python-docx Document.

    The input document is not modified. On failure the original document is
    returned together with a failed result.

    Args:
        python_docx_doc: A python-docx Document object
        replacement_map: Values to substitute (a ReplacementMap or plain dict)
        config: Engine configuration (pattern, case sensitivity, strict mode)

    Returns:
        (filled python-docx Document, FileReplaceResult)

    Raises:
        ImportError: If python-docx is not installed (with helpful message)
        TypeError: If the input is not a python-docx Document
        InvalidPatternError: If the configured pattern is invalid

    Example:
        >>> from docx import Document
        >>> from python_docx_fill.compat import fill_python_docx
        >>>
        >>> doc = Document()
        >>> doc.add_paragraph("Dear {{NAME}},")
        >>> filled, result = fill_python_docx(doc, {"NAME": "Alice"})
        >>> filled.paragraphs[0].text
        'Dear Alice,'
    """
    try:
        from docx import Document as PythonDocxDoc
        from docx.document import Document as PythonDocxDocType
    except ImportError as e:
        raise ImportError(
            "python-docx is required for fill_python_docx(). "
            "Install it with: pip install python-docx"
        ) from e

    if not isinstance(python_docx_doc, PythonDocxDocType):
        raise TypeError(
            f"Expected python-docx Document, got {type(python_docx_doc).__name__}. "
            "Pass a Document object created with: from docx import Document"
        )

    config = config or EngineConfig()
    if not isinstance(replacement_map, ReplacementMap):
        replacement_map = ReplacementMap(replacement_map)
    compiled = compile_pattern(config.placeholder_pattern, config.case_sensitive)

    start = time.perf_counter()
    buffer = io.BytesIO()
    python_docx_doc.save(buffer)

    try:
        with OOXMLPackage.from_bytes(buffer.getvalue()) as package:
            plan = ReplacementPlanner(compiled).plan_file(
                package, replacement_map, strict=config.strict
            )
            replacements = ReplacementApplier().apply(package, plan)
            data = package.save_to_bytes()
    except Exception as e:
        if is_critical(e):
            raise
        error = wrap_exception(e, "placeholder replacement", IN_MEMORY_PATH)
        logger.error(f"Filling python-docx document failed: {error}")
        result = FileReplaceResult(
            IN_MEMORY_PATH, False, error=error, duration=time.perf_counter() - start
        )
        return python_docx_doc, result

    result = FileReplaceResult(
        IN_MEMORY_PATH, True, replacements=replacements, duration=time.perf_counter() - start
    )
    return PythonDocxDoc(io.BytesIO(data)), result
