"""Core pipeline for paperparse."""

from __future__ import annotations

import copy
import html
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from bs4 import Tag

from .citations import extract_citations, mentions_reference_section, resolve_citations
from .matchers import OverlayMatchers, tag_classes
from .models import (
    AlignedSentence,
    PaperStructure,
    ParagraphData,
    ParagraphMetadata,
    ParseResult,
    StructureEntry,
    TocItem,
)
from .sanitize import plain_text, sanitize_fragment
from .sentences import align_sentences, is_secondary_script
from .source import normalize_source, preprocess_noise
from .tree import HEADING_TAGS, build_tree, collect_blocks, remove_global_noise, select_root, visible_text

LOG = logging.getLogger("paperparse")

DEDUP_PREFIX_LEN = 220
REFERENCE_HEADING_GRACE = 2
FALLBACK_TEXT_LIMIT = 200_000

OUTER_MARKUP_TAGS = ("img", "figure", "picture", "table", "hr")
CODE_TAGS = ("pre", "code")
PASS_THROUGH_ELEMENTS = ("li", "blockquote", "p")
IMAGE_ELEMENTS = ("figure", "picture", "img")

ABSOLUTE_SRC_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|/)")
CAPTION_CLASS_RE = re.compile(r"caption", re.IGNORECASE)
_LEADING_BR_RE = re.compile(r"^\s*<br\s*/?>", re.IGNORECASE)
_TRAILING_BR_RE = re.compile(r"<br\s*/?>\s*$", re.IGNORECASE)
_PARTIAL_ENTITY_RE = re.compile(r"&[^;\s]*$")


@dataclass
class ParserConfig:
    matchers: OverlayMatchers = field(default_factory=OverlayMatchers)
    dedup_prefix_len: int = DEDUP_PREFIX_LEN
    reference_heading_grace: int = REFERENCE_HEADING_GRACE
    fallback_text_limit: int = FALLBACK_TEXT_LIMIT
    mirror_secondary_script: bool = True


@dataclass
class BilingualChunks:
    primary: str
    secondary: str
    clone: Tag
    translated: bool


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_paperparse_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_paperparse_logger(level)


def rolling_hash(text: str) -> str:
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return f"{value:08x}"


def resolve_asset_path(src: str, base_reference: str) -> str:
    src = (src or "").strip()
    if not src or not base_reference or ABSOLUTE_SRC_RE.match(src):
        return src
    base = base_reference.replace("\\", "/")
    directory = base[: base.rfind("/") + 1]
    return f"{directory}{src}" if directory else src


def _trim_line_break(markup: str) -> str:
    markup = _LEADING_BR_RE.sub("", markup, count=1)
    return _TRAILING_BR_RE.sub("", markup, count=1).strip()


def _wrapper_markup(wrapper: Tag, matchers: OverlayMatchers) -> str:
    inners = wrapper.find_all(class_=matchers.inner_class)
    if inners:
        markup = " ".join(inner.decode_contents() for inner in inners)
    else:
        markup = wrapper.decode_contents()
    return _trim_line_break(markup)


def split_bilingual(block: Tag, matchers: OverlayMatchers, base_reference: str = "") -> BilingualChunks:
    clone = copy.copy(block)
    for img in ([clone] if clone.name == "img" else []) + clone.find_all("img"):
        if img.get("src"):
            img["src"] = resolve_asset_path(str(img["src"]), base_reference)

    if matchers.wrapper_class in tag_classes(clone):
        return BilingualChunks(primary="", secondary=_wrapper_markup(clone, matchers), clone=clone, translated=True)

    wrappers = [
        wrapper
        for wrapper in clone.find_all(class_=matchers.wrapper_class)
        if wrapper.find_parent(class_=matchers.wrapper_class) is None
    ]
    chunks: List[str] = []
    for wrapper in wrappers:
        markup = _wrapper_markup(wrapper, matchers)
        if markup:
            chunks.append(markup)
        wrapper.decompose()
    for stray in clone.find_all(class_=matchers.block_class):
        if not stray.decomposed:
            stray.decompose()

    primary = str(clone) if clone.name in OUTER_MARKUP_TAGS else clone.decode_contents()
    return BilingualChunks(primary=primary, secondary=" ".join(chunks), clone=clone, translated=bool(wrappers))


def _caption_text(node: Optional[Tag]) -> str:
    return visible_text(node) if node is not None else ""


def classify_block(clone: Tag) -> Tuple[str, ParagraphMetadata]:
    name = clone.name
    if name in HEADING_TAGS:
        return "heading", ParagraphMetadata(heading_level=int(name[1]))
    if name in CODE_TAGS:
        return "code", ParagraphMetadata()

    table = clone if name == "table" else clone.find("table")
    if table is not None:
        caption_el = table.find("caption") or clone.find(class_=CAPTION_CLASS_RE)
        return "table", ParagraphMetadata(caption=_caption_text(caption_el))

    img = clone if name == "img" else clone.find("img")
    if img is not None:
        caption = _caption_text(clone.find("figcaption")) or str(img.get("title") or "")
        return "image", ParagraphMetadata(src=str(img.get("src") or ""), alt=str(img.get("alt") or ""), caption=caption)

    return "text", ParagraphMetadata()


def normalize_element(name: str, paragraph_type: str) -> str:
    if paragraph_type == "heading":
        return name
    if paragraph_type == "table":
        return "table"
    if paragraph_type == "image":
        return name if name in IMAGE_ELEMENTS else "figure"
    if paragraph_type == "code":
        return "pre"
    if name in PASS_THROUGH_ELEMENTS:
        return name
    return "div"


class DocumentBuilder:
    """Turns collected blocks into paragraphs while accumulating the structure index."""

    def __init__(self, base_reference: str = "", config: Optional[ParserConfig] = None) -> None:
        self.base_reference = base_reference or ""
        self.config = config or ParserConfig()
        self.paragraphs: List[ParagraphData] = []
        self.structure = PaperStructure()
        self._signatures: Set[str] = set()
        self._ids: Set[str] = set()
        self.duplicates = 0
        self.empty = 0

    def _unique_id(self, signature: str, index: int) -> str:
        candidate = f"p-{rolling_hash(f'{signature}|{index}')}"
        suffix = 1
        unique = candidate
        while unique in self._ids:
            unique = f"{candidate}-{suffix}"
            suffix += 1
        self._ids.add(unique)
        return unique

    def add_block(self, block: Tag) -> Optional[ParagraphData]:
        matchers = self.config.matchers
        chunks = split_bilingual(block, matchers, self.base_reference)
        en_html = sanitize_fragment(chunks.primary, matchers)
        ko_html = sanitize_fragment(chunks.secondary, matchers)
        en_plain = plain_text(en_html)
        ko_plain = plain_text(ko_html)

        if (
            self.config.mirror_secondary_script
            and not chunks.translated
            and en_plain
            and not ko_plain
            and is_secondary_script(en_plain)
        ):
            ko_html, ko_plain = en_html, en_plain

        paragraph_type, metadata = classify_block(chunks.clone)
        if not en_plain and not ko_plain and paragraph_type not in ("image", "table") and block.name != "hr":
            self.empty += 1
            return None

        element = normalize_element(block.name, paragraph_type)
        if paragraph_type == "table":
            en_html = sanitize_fragment(chunks.primary, matchers, keep_vector_graphics=True)

        dedup_text = en_plain or ko_plain or (metadata.src or "")
        signature = f"{paragraph_type}|{element}|{dedup_text[: self.config.dedup_prefix_len].lower()}"
        if signature in self._signatures:
            self.duplicates += 1
            return None
        self._signatures.add(signature)

        index = len(self.paragraphs)
        paragraph_id = self._unique_id(signature, index)
        visible = en_plain or ko_plain

        if paragraph_type == "heading":
            metadata.heading_id = str(chunks.clone.get("id") or "") or paragraph_id
            self.structure.toc.append(
                TocItem(id=metadata.heading_id, text=visible, level=metadata.heading_level or 1, paragraph_id=paragraph_id)
            )
        elif paragraph_type == "image":
            self.structure.figures.append(StructureEntry(paragraph_id, metadata.caption or metadata.alt or "Image"))
        elif paragraph_type == "table":
            self.structure.tables.append(StructureEntry(paragraph_id, metadata.caption or "Table"))

        if paragraph_type == "code":
            sentences = align_sentences(plain_text(en_html, preserve_whitespace=True), ko_plain)
        else:
            sentences = align_sentences(en_plain, ko_plain)
        if not sentences:
            sentences = [AlignedSentence(en="", ko="")]

        paragraph = ParagraphData(
            id=paragraph_id,
            type=paragraph_type,
            element=element,
            en_text=en_html,
            ko_text=ko_html,
            sentences=sentences,
            citations=extract_citations(visible),
            index=index,
            metadata=metadata,
            is_reference=mentions_reference_section(visible),
        )
        self.paragraphs.append(paragraph)
        return paragraph

    def result(self) -> ParseResult:
        paragraphs = resolve_citations(self.paragraphs, self.config.reference_heading_grace)
        return ParseResult(paragraphs=paragraphs, structure=self.structure)


def fallback_result(text: str, limit: int = FALLBACK_TEXT_LIMIT) -> ParseResult:
    """Single-paragraph result holding ``text`` escaped, with the escaped markup bounded to ``limit`` characters."""
    escaped = html.escape((text or "").strip())
    if len(escaped) > limit:
        escaped = _PARTIAL_ENTITY_RE.sub("", escaped[:limit])
    bounded = html.unescape(escaped)
    signature = f"text|p|{bounded[:DEDUP_PREFIX_LEN].lower()}"
    paragraph = ParagraphData(
        id=f"p-{rolling_hash(f'{signature}|0')}",
        type="text",
        element="p",
        en_text=escaped,
        ko_text="",
        sentences=[AlignedSentence(en=bounded, ko="")] if bounded else [],
        citations=[],
        index=0,
    )
    return ParseResult(paragraphs=[paragraph], structure=PaperStructure())


def parse(raw_markup: str, base_reference: str = "", config: Optional[ParserConfig] = None) -> ParseResult:
    cfg = config or ParserConfig()
    raw_markup = raw_markup or ""

    text = normalize_source(raw_markup)
    text = preprocess_noise(text, cfg.matchers)
    soup = build_tree(text)
    removed = remove_global_noise(soup, cfg.matchers)
    root = select_root(soup, cfg.matchers)
    blocks = collect_blocks(root, cfg.matchers)
    LOG.debug("Collected %d block(s) under <%s>; removed %d noise node(s)", len(blocks), root.name, removed)

    builder = DocumentBuilder(base_reference, cfg)
    for block in blocks:
        builder.add_block(block)
    LOG.debug(
        "Parsed %d paragraph(s); dropped %d duplicate(s) and %d empty block(s)",
        len(builder.paragraphs),
        builder.duplicates,
        builder.empty,
    )

    if not builder.paragraphs:
        LOG.warning("No content blocks found; using single-paragraph fallback")
        return fallback_result(visible_text(soup) or raw_markup, cfg.fallback_text_limit)
    return builder.result()


def parse_safe(raw_markup: str, base_reference: str = "", config: Optional[ParserConfig] = None) -> ParseResult:
    cfg = config or ParserConfig()
    try:
        return parse(raw_markup, base_reference, cfg)
    except Exception as exc:
        LOG.warning("Parse failed (%s: %s); using single-paragraph fallback", type(exc).__name__, exc)
        return fallback_result(raw_markup or "", cfg.fallback_text_limit)
