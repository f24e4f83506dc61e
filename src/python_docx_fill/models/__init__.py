"""
Data models for templates, placeholders and replacement values.
"""

from .placeholder import Placeholder, PlaceholderKind, PlaceholderLocation
from .replacement import ImageValue, ReplacementMap, ReplacementValue, TextValue
from .template_file import TemplateFile

__all__ = [
    "ImageValue",
    "Placeholder",
    "PlaceholderKind",
    "PlaceholderLocation",
    "ReplacementMap",
    "ReplacementValue",
    "TemplateFile",
    "TextValue",
]
