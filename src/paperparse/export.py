"""Text exports built from parsed paragraphs."""

from __future__ import annotations

import re
from typing import List

from markdownify import markdownify as md_convert

from .models import ParagraphData, ParseResult
from .sanitize import plain_text


def document_context_text(paragraphs: List[ParagraphData]) -> str:
    """Plain text of the whole document, one ``[[ID:...]]``-tagged block per paragraph."""
    parts: List[str] = []
    for paragraph in paragraphs:
        marker = f"[[ID:{paragraph.id}]]"
        if paragraph.type == "heading":
            parts.append(f"{marker} # {plain_text(paragraph.en_text) or plain_text(paragraph.ko_text)}")
        elif paragraph.type == "code":
            parts.append(f"{marker} ```\n{plain_text(paragraph.en_text, preserve_whitespace=True)}\n```")
        else:
            parts.append(f"{marker} {plain_text(paragraph.en_text) or plain_text(paragraph.ko_text)}")
    return "\n\n".join(part for part in parts if part)


def _blockquote(text: str) -> str:
    return "\n".join(f"> {line}" if line else ">" for line in text.splitlines())


def _paragraph_markdown(paragraph: ParagraphData) -> str:
    meta = paragraph.metadata
    if paragraph.type == "heading":
        level = max(1, min(meta.heading_level or 1, 6))
        title = plain_text(paragraph.en_text) or plain_text(paragraph.ko_text)
        return f"{'#' * level} {title}"
    if paragraph.type == "code":
        return f"```\n{plain_text(paragraph.en_text, preserve_whitespace=True)}\n```"
    if paragraph.type == "image":
        lines = [f"![{meta.alt or ''}]({meta.src or ''})"]
        if meta.caption:
            lines.append("")
            lines.append(f"*{meta.caption}*")
        return "\n".join(lines)
    body = md_convert(paragraph.en_text, heading_style="ATX").strip() if paragraph.en_text else ""
    if paragraph.type == "table" and meta.caption:
        body = f"*{meta.caption}*\n\n{body}" if body else f"*{meta.caption}*"
    return body


def paragraphs_to_markdown(result: ParseResult) -> str:
    blocks: List[str] = []
    for paragraph in result.paragraphs:
        primary = _paragraph_markdown(paragraph)
        secondary = plain_text(paragraph.ko_text)
        if secondary and secondary != plain_text(paragraph.en_text):
            primary = f"{primary}\n\n{_blockquote(secondary)}" if primary else _blockquote(secondary)
        if primary.strip():
            blocks.append(primary.strip())
    text = "\n\n".join(blocks)
    return re.sub(r"\n{3,}", "\n\n", text) + "\n"
