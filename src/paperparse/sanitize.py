"""Markup sanitizing for per-block fragments."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .matchers import OverlayMatchers, is_inline_hidden, tag_classes

DROP_TAGS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "object",
    "embed",
    "template",
    "form",
    "input",
    "button",
    "select",
    "option",
    "textarea",
    "label",
    "dialog",
    "canvas",
)

ALLOWED_TAGS = frozenset(
    [
        "div", "p", "span", "blockquote", "pre", "code",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "ul", "ol", "li", "dl", "dt", "dd",
        "table", "thead", "tbody", "tfoot", "tr", "th", "td", "caption",
        "a", "strong", "em", "b", "i", "u", "s", "mark", "small", "sub", "sup",
        "img", "figure", "figcaption", "picture", "hr",
    ]
)
VECTOR_TAGS = frozenset(
    ["svg", "g", "path", "circle", "rect", "line", "polyline", "polygon", "ellipse", "use", "defs", "text", "tspan"]
)
KEPT_ATTRIBUTES = ("href", "src", "alt", "title", "id", "class")
PRESERVE_WHITESPACE_TAGS = ("pre", "code")

_WS_RE = re.compile(r"\s+")


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _in_vector(tag: Tag) -> bool:
    return tag.name == "svg" or tag.find_parent("svg") is not None


def _preserves_whitespace(node) -> bool:
    parent = node.parent
    while parent is not None:
        if getattr(parent, "name", None) in PRESERVE_WHITESPACE_TAGS:
            return True
        parent = parent.parent
    return False


def sanitize_fragment(markup: str, matchers: OverlayMatchers, *, keep_vector_graphics: bool = False) -> str:
    if not markup or not markup.strip():
        return ""
    soup = BeautifulSoup(markup, "html.parser")

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(DROP_TAGS):
        if not tag.decomposed:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if matchers.is_noise_class(tag_classes(tag)):
            tag.decompose()

    # math sources first: they are hidden inline and must survive the hidden sweep
    for tag in soup.find_all(True):
        if tag.decomposed or not matchers.is_math_source(tag):
            continue
        tex = tag.get_text().strip()
        if tex:
            tag.replace_with(NavigableString(f"${tex}$"))
        else:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if is_inline_hidden(tag):
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.decomposed or not matchers.is_math_render(tag):
            continue
        if keep_vector_graphics and (tag.name in ("svg", matchers.vector_math_tag) or _in_vector(tag)):
            continue
        tag.decompose()

    for br in soup.find_all("br"):
        br.replace_with(NavigableString("\n" if _preserves_whitespace(br) else " "))

    for tag in soup.find_all(True):
        if keep_vector_graphics and _in_vector(tag):
            continue
        for attr in list(tag.attrs):
            if attr not in KEPT_ATTRIBUTES:
                del tag.attrs[attr]

    for tag in soup.find_all(True):
        if tag.name in ALLOWED_TAGS:
            continue
        if keep_vector_graphics and tag.name in VECTOR_TAGS and _in_vector(tag):
            continue
        tag.unwrap()

    for text in soup.find_all(string=True):
        if _preserves_whitespace(text):
            continue
        collapsed = _WS_RE.sub(" ", str(text))
        if collapsed != str(text):
            text.replace_with(NavigableString(collapsed))

    return str(soup).strip()


def plain_text(markup: str, *, preserve_whitespace: bool = False) -> str:
    if not markup:
        return ""
    text = BeautifulSoup(markup, "html.parser").get_text()
    if preserve_whitespace:
        return text.strip("\n")
    return collapse_ws(text)
