"""Tree construction, global noise removal, root selection and block collection."""

from __future__ import annotations

import copy
import re
from typing import List, Optional, Set, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from .matchers import OverlayMatchers, is_aria_hidden, is_inline_hidden, tag_classes
from .sanitize import collapse_ws

GLOBAL_NOISE_TAGS = ("script", "style", "meta", "link", "iframe", "object", "template", "noscript")

BLOCK_LEVEL_TAGS = frozenset(
    [
        "address", "article", "aside", "blockquote", "dd", "details", "dialog", "div", "dl", "dt",
        "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
        "header", "hgroup", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table", "ul",
        "picture", "body", "html",
    ]
)
_BLOCK_LEVEL_NAMES = sorted(BLOCK_LEVEL_TAGS)
LIST_CONTAINER_TAGS = ("ul", "ol", "dl")
LIST_ITEM_TAGS = ("li", "dt", "dd")
ATOMIC_MEDIA_TAGS = ("img", "figure", "picture", "table", "hr")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
PARAGRAPH_LIKE_TAGS = ("p", "blockquote", "pre")
STRUCTURAL_CONTAINER_TAGS = (
    "html", "body", "main", "article", "section", "header", "footer", "aside", "nav", "details", "hgroup", "center",
)
USEFUL_MEDIA_TAGS = ("img", "picture", "svg", "table", "figure", "video")
SKIP_TAGS = ("script", "style", "head", "noscript", "template")

STRUCTURAL_HINT_RE = re.compile(
    r"abstract|author|caption|section[-_]?title|ltx_title|ltx_authors|affiliation",
    re.IGNORECASE,
)

TreeRoot = Union[BeautifulSoup, Tag]


def build_tree(text: str) -> BeautifulSoup:
    return BeautifulSoup(text or "", "html.parser")


def remove_global_noise(soup: BeautifulSoup, matchers: OverlayMatchers) -> int:
    removed = 0
    for tag in soup.find_all(GLOBAL_NOISE_TAGS):
        if not tag.decomposed:
            tag.decompose()
            removed += 1
    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if is_aria_hidden(tag) or matchers.is_noise_class(tag_classes(tag)):
            tag.decompose()
            removed += 1
            continue
        if is_inline_hidden(tag) and not matchers.is_math_source(tag):
            tag.decompose()
            removed += 1
    return removed


def visible_text(node: Optional[TreeRoot]) -> str:
    if node is None:
        return ""
    return collapse_ws(node.get_text())


def select_root(soup: BeautifulSoup, matchers: OverlayMatchers) -> TreeRoot:
    candidates: List[TreeRoot] = []
    for container_id in matchers.content_container_ids:
        found = soup.find(id=container_id)
        if found is not None:
            candidates.append(found)
    for name in ("article", "main"):
        found = soup.find(name)
        if found is not None:
            candidates.append(found)
    if soup.body is not None:
        candidates.append(soup.body)
    candidates.append(soup)

    best: TreeRoot = candidates[0]
    best_score = -1
    for candidate in candidates:
        score = len(visible_text(candidate))
        if score > best_score:
            best = candidate
            best_score = score
    return best


def has_direct_text(node: Tag) -> bool:
    for child in node.children:
        if isinstance(child, NavigableString):
            if str(child).strip():
                return True
        elif isinstance(child, Tag) and child.name not in BLOCK_LEVEL_TAGS:
            if child.get_text().strip():
                return True
    return False


def has_block_children(node: Tag) -> bool:
    return any(isinstance(child, Tag) and child.name in BLOCK_LEVEL_TAGS for child in node.children)


def has_useful_media(node: Tag) -> bool:
    if node.name in USEFUL_MEDIA_TAGS:
        return True
    return node.find(USEFUL_MEDIA_TAGS) is not None


def has_structural_hint(node: Tag) -> bool:
    markers = tag_classes(node) + [str(node.get("id") or ""), str(node.get("role") or "")]
    return any(marker and STRUCTURAL_HINT_RE.search(marker) for marker in markers)


def should_skip(node: Tag, matchers: OverlayMatchers) -> bool:
    if node.name in SKIP_TAGS:
        return True
    if node.find_parent("head") is not None:
        return True
    if is_aria_hidden(node):
        return True
    return matchers.is_noise_class(tag_classes(node))


def _breaks_run(child: Tag) -> bool:
    name = child.name
    if name in BLOCK_LEVEL_TAGS or name in ATOMIC_MEDIA_TAGS or name in STRUCTURAL_CONTAINER_TAGS:
        return True
    return child.find(_BLOCK_LEVEL_NAMES) is not None


def _run_has_content(run: List[PageElement]) -> bool:
    for piece in run:
        if isinstance(piece, Tag):
            if piece.get_text().strip() or has_useful_media(piece):
                return True
        elif str(piece).strip():
            return True
    return False


def _run_block(name: str, run: List[PageElement]) -> Tag:
    block = BeautifulSoup("", "html.parser").new_tag(name)
    for piece in run:
        block.append(copy.copy(piece))
    return block


def _split_children(node: TreeRoot, matchers: OverlayMatchers) -> Tuple[List[Tag], List[Tag]]:
    """Children of ``node`` in order, with each run of inline content between block children
    gathered into a detached block of the same tag name.

    Returns ``(items, runs)``; ``runs`` holds the gathered blocks, which are emitted as-is.
    """
    run_name = "p" if isinstance(node, BeautifulSoup) else node.name
    items: List[Tag] = []
    runs: List[Tag] = []
    run: List[PageElement] = []

    def close_run() -> None:
        if _run_has_content(run):
            block = _run_block(run_name, run)
            items.append(block)
            runs.append(block)
        run.clear()

    for child in node.children:
        if isinstance(child, Tag):
            if should_skip(child, matchers):
                continue
            if _breaks_run(child):
                close_run()
                items.append(child)
            else:
                run.append(child)
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            run.append(child)
    close_run()
    return items, runs


def collect_blocks(root: TreeRoot, matchers: OverlayMatchers) -> List[Tag]:
    """Flatten ``root`` into block-level nodes in document order.

    Inline text sitting beside block children is kept as its own block.
    Uses an explicit stack so deeply nested wrappers do not hit the recursion limit.
    """
    blocks: List[Tag] = []
    gathered: Set[int] = set()

    def push_children(node: TreeRoot) -> None:
        items, runs = _split_children(node, matchers)
        gathered.update(id(block) for block in runs)
        stack.extend(reversed(items))

    stack: List[Tag] = []
    push_children(root)

    while stack:
        node = stack.pop()
        if id(node) in gathered:
            blocks.append(node)
            continue
        if should_skip(node, matchers):
            continue
        name = node.name

        if name in LIST_CONTAINER_TAGS:
            push_children(node)
        elif name in LIST_ITEM_TAGS:
            if has_block_children(node):
                push_children(node)
            else:
                blocks.append(node)
        elif name in ATOMIC_MEDIA_TAGS or name in HEADING_TAGS:
            blocks.append(node)
        elif name in PARAGRAPH_LIKE_TAGS:
            if has_direct_text(node) or has_useful_media(node) or has_structural_hint(node):
                blocks.append(node)
            else:
                push_children(node)
        elif name == "div":
            near_leaf = not has_block_children(node)
            if (near_leaf and (has_direct_text(node) or has_useful_media(node))) or has_structural_hint(node):
                blocks.append(node)
            else:
                push_children(node)
        elif has_block_children(node) or name in STRUCTURAL_CONTAINER_TAGS:
            push_children(node)
        elif has_direct_text(node):
            blocks.append(node)

    return blocks
