"""Citation marker extraction and bibliography resolution."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Dict, List, Optional

from .models import Citation, ParagraphData
from .sanitize import plain_text

LOG = logging.getLogger("paperparse")

NUMERIC_CITATION_RE = re.compile(r"\[\d+(?:\s*[,–-]\s*\d+)*\]")
AUTHOR_YEAR_CITATION_RE = re.compile(r"\((?:[A-Za-z\u00c0-\u017f\s&.'-]+,?\s*(?:19|20)\d{2}[a-z]?(?:;\s*)?)+\)")
SINGLE_NUMERAL_CITATION_RE = re.compile(r"^\[(\d+)\]$")
BIBLIOGRAPHY_ENTRY_RE = re.compile(r"^\s*(?:\[(\d{1,4})\]|(\d{1,4})[.):]?(?=\s))")
REFERENCE_TERM_RE = re.compile(
    r"\b(?:references?|bibliography|works\s+cited|literature\s+cited)\b|참고\s*문헌",
    re.IGNORECASE,
)
REFERENCE_BLOCK_RE = re.compile(
    r"^(?:[\dIVX]+\.?\s*)?(?:references?|works\s+cited|literature\s+cited|참고\s*문헌)\b",
    re.IGNORECASE,
)


def extract_citations(text: str) -> List[Citation]:
    seen: set = set()
    citations: List[Citation] = []
    for pattern in (NUMERIC_CITATION_RE, AUTHOR_YEAR_CITATION_RE):
        for match in pattern.finditer(text or ""):
            marker = match.group(0)
            if marker in seen:
                continue
            seen.add(marker)
            citations.append(Citation(id=marker))
    return citations


def mentions_reference_section(text: str) -> bool:
    """Block-level flag: the text opens with a references header or mentions a bibliography."""
    stripped = (text or "").strip()
    if REFERENCE_BLOCK_RE.match(stripped):
        return True
    return "bibliography" in stripped.lower()


def _visible(paragraph: ParagraphData) -> str:
    return plain_text(paragraph.en_text) or plain_text(paragraph.ko_text)


def bibliography_numeral(text: str) -> Optional[str]:
    match = BIBLIOGRAPHY_ENTRY_RE.match(text or "")
    if not match:
        return None
    numeral = match.group(1) or match.group(2)
    return str(int(numeral))


def find_reference_start(paragraphs: List[ParagraphData]) -> Optional[int]:
    for position, paragraph in enumerate(paragraphs):
        if paragraph.type == "heading" and REFERENCE_TERM_RE.search(_visible(paragraph)):
            return position
    return None


def resolve_citations(paragraphs: List[ParagraphData], grace: int = 2) -> List[ParagraphData]:
    start = find_reference_start(paragraphs)
    if start is None:
        LOG.debug("No references heading found; citations left unresolved")
        return paragraphs

    lookup: Dict[str, str] = {}
    entry_positions: List[int] = []
    for position in range(start + 1, len(paragraphs)):
        paragraph = paragraphs[position]
        if paragraph.type == "heading" and position - start > grace and not paragraph.is_reference:
            break
        numeral = bibliography_numeral(_visible(paragraph))
        if numeral is None:
            continue
        if numeral not in lookup:
            lookup[numeral] = paragraph.id
        entry_positions.append(position)

    if not lookup:
        return paragraphs

    resolved = list(paragraphs)
    for position in entry_positions:
        if not resolved[position].is_reference:
            resolved[position] = dataclasses.replace(resolved[position], is_reference=True)

    hits = 0
    for position, paragraph in enumerate(resolved):
        if not paragraph.citations:
            continue
        changed = False
        citations: List[Citation] = []
        for citation in paragraph.citations:
            match = SINGLE_NUMERAL_CITATION_RE.match(citation.id)
            target = lookup.get(str(int(match.group(1)))) if match else None
            if target is not None and citation.paragraph_id != target:
                citations.append(Citation(id=citation.id, paragraph_id=target))
                changed = True
                hits += 1
            else:
                citations.append(citation)
        if changed:
            resolved[position] = dataclasses.replace(paragraph, citations=citations)

    LOG.debug("Resolved %d citation(s) against %d bibliography entries", hits, len(lookup))
    return resolved
