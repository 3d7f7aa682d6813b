"""Bilingual academic-paper markup to paragraph model."""

from .core import ParserConfig, fallback_result, parse, parse_safe
from .matchers import OverlayMatchers, load_matchers_file
from .models import (
    AlignedSentence,
    Citation,
    PaperStructure,
    ParagraphData,
    ParagraphMetadata,
    ParseResult,
    StructureEntry,
    TocItem,
    replace_paragraph,
)
from .version import __version__

__all__ = [
    "AlignedSentence",
    "Citation",
    "OverlayMatchers",
    "PaperStructure",
    "ParagraphData",
    "ParagraphMetadata",
    "ParseResult",
    "ParserConfig",
    "StructureEntry",
    "TocItem",
    "__version__",
    "fallback_result",
    "load_matchers_file",
    "parse",
    "parse_safe",
    "replace_paragraph",
]
