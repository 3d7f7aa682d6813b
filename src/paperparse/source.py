"""Text-level stages that run before the markup tree is built."""

from __future__ import annotations

import html
import re
from typing import List, Optional

from .matchers import OverlayMatchers

HEAD_PLACEHOLDER = '<head><meta charset="utf-8"></head>'

LIGHT_HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
LIGHT_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
LIGHT_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
LIGHT_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})\s*([\w+#.-]*)")
LIGHT_TABLE_ROW_RE = re.compile(r"^\s*\|.*\|\s*$")
LIGHT_TABLE_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(?:\|\s*:?-{3,}:?\s*)*\|?\s*$")
LIGHT_IMAGE_LINE_RE = re.compile(r"^\s*!\[([^\]]*)\]\(\s*([^)\s]+)(?:\s+\"[^\"]*\")?\s*\)\s*$")

_LIGHT_MARKERS = (
    re.compile(r"^\s{0,3}#{1,6}\s+\S", re.MULTILINE),
    re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+\S", re.MULTILINE),
    re.compile(r"^\s*\|.+\|\s*$", re.MULTILINE),
    re.compile(r"^\s*(?:`{3,}|~{3,})", re.MULTILINE),
)
_STRUCTURAL_TAG_RE = re.compile(
    r"<\s*/?\s*(?:html|head|body|div|p|span|br|h[1-6]|table|tr|td|ul|ol|li|section|article|main|img|pre|a)\b",
    re.IGNORECASE,
)


def is_lightweight_markup(text: str) -> bool:
    if not text or _STRUCTURAL_TAG_RE.search(text):
        return False
    return any(marker.search(text) for marker in _LIGHT_MARKERS)


def _esc(text: str) -> str:
    return html.escape(text, quote=True)


def _split_table_row(row: str) -> List[str]:
    cells = row.strip()
    if cells.startswith("|"):
        cells = cells[1:]
    if cells.endswith("|"):
        cells = cells[:-1]
    return [cell.strip() for cell in cells.split("|")]


def lightweight_to_markup(text: str) -> str:
    out: List[str] = []
    paragraph: List[str] = []
    list_tag: Optional[str] = None
    fence: Optional[str] = None
    fence_lang = ""
    code_lines: List[str] = []
    table_rows: List[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            out.append(f"<p>{_esc(' '.join(paragraph))}</p>")
            paragraph.clear()

    def close_list() -> None:
        nonlocal list_tag
        if list_tag:
            out.append(f"</{list_tag}>")
            list_tag = None

    def flush_table() -> None:
        if not table_rows:
            return
        rows = list(table_rows)
        table_rows.clear()
        if len(rows) >= 2 and LIGHT_TABLE_SEPARATOR_RE.match(rows[1]):
            header = _split_table_row(rows[0])
            body = [_split_table_row(r) for r in rows[2:]]
            parts = ["<table>", "<thead><tr>" + "".join(f"<th>{_esc(c)}</th>" for c in header) + "</tr></thead>"]
            if body:
                parts.append("<tbody>")
                for cells in body:
                    parts.append("<tr>" + "".join(f"<td>{_esc(c)}</td>" for c in cells) + "</tr>")
                parts.append("</tbody>")
            parts.append("</table>")
            out.append("".join(parts))
        else:
            for row in rows:
                out.append(f"<p>{_esc(row.strip())}</p>")

    for line in text.splitlines():
        if fence is not None:
            if line.strip().startswith(fence):
                cls = f' class="language-{_esc(fence_lang)}"' if fence_lang else ""
                out.append(f"<pre><code{cls}>{_esc(chr(10).join(code_lines))}</code></pre>")
                fence = None
                fence_lang = ""
                code_lines = []
            else:
                code_lines.append(line)
            continue

        fence_match = LIGHT_FENCE_RE.match(line)
        if fence_match:
            flush_paragraph()
            close_list()
            flush_table()
            fence = fence_match.group(1)
            fence_lang = fence_match.group(2)
            continue

        if LIGHT_TABLE_ROW_RE.match(line):
            flush_paragraph()
            close_list()
            table_rows.append(line)
            continue
        flush_table()

        if not line.strip():
            flush_paragraph()
            close_list()
            continue

        heading = LIGHT_HEADING_RE.match(line)
        if heading:
            flush_paragraph()
            close_list()
            level = len(heading.group(1))
            out.append(f"<h{level}>{_esc(heading.group(2))}</h{level}>")
            continue

        bullet = LIGHT_BULLET_RE.match(line)
        numbered = None if bullet else LIGHT_NUMBERED_RE.match(line)
        if bullet or numbered:
            flush_paragraph()
            wanted = "ul" if bullet else "ol"
            if list_tag != wanted:
                close_list()
                out.append(f"<{wanted}>")
                list_tag = wanted
            item = (bullet or numbered).group(1)
            out.append(f"<li>{_esc(item.strip())}</li>")
            continue
        close_list()

        image = LIGHT_IMAGE_LINE_RE.match(line)
        if image:
            flush_paragraph()
            out.append(f'<figure><img src="{_esc(image.group(2))}" alt="{_esc(image.group(1))}"></figure>')
            continue

        paragraph.append(line.strip())

    if fence is not None:
        cls = f' class="language-{_esc(fence_lang)}"' if fence_lang else ""
        out.append(f"<pre><code{cls}>{_esc(chr(10).join(code_lines))}</code></pre>")
    flush_table()
    flush_paragraph()
    close_list()
    return "\n".join(out)


def normalize_source(text: str) -> str:
    if is_lightweight_markup(text):
        return lightweight_to_markup(text)
    return text


def _paired_block_re(tag: str, attr_pattern: str = "") -> re.Pattern:
    name = re.escape(tag)
    return re.compile(
        rf"<{name}(?=[\s>/]){attr_pattern}[^>]*>.*?</{name}\s*>",
        re.IGNORECASE | re.DOTALL,
    )


_HEAD_RE = re.compile(r"<head(?=[\s>])[^>]*>.*?</head\s*>", re.IGNORECASE | re.DOTALL)
_BASE_RE = re.compile(r"<base(?=[\s>/])[^>]*>", re.IGNORECASE)


def preprocess_noise(text: str, matchers: OverlayMatchers) -> str:
    """Drop heavy, redundant payloads before the tree is built.

    Math-source tags are never matched: every pattern anchors on a complete tag
    name, so ``<math`` does not hit ``<tex-math``.
    """
    if not text:
        return text
    text = _HEAD_RE.sub(HEAD_PLACEHOLDER, text, count=1)
    for tag in matchers.redundant_math_tags:
        text = _paired_block_re(tag).sub("", text)
    vector_attr = r"(?=[^>]*\bjax\s*=\s*[\"']?svg\b)"
    text = _paired_block_re(matchers.vector_math_tag, vector_attr).sub("", text)
    text = _BASE_RE.sub("", text)
    return text
