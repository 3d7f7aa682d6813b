"""Class-name and id conventions of the bilingual translation overlay."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

INLINE_HIDDEN_RE = re.compile(r"display\s*:\s*none", re.IGNORECASE)


@dataclass
class OverlayMatchers:
    wrapper_class: str = "immersive-translate-target-wrapper"
    inner_class: str = "immersive-translate-target-inner"
    block_class: str = "immersive-translate-target-translation-block-wrapper"
    input_artifact_classes: Tuple[str, ...] = (
        "immersive-translate-input",
        "immersive-translate-target-abbr",
        "immersive-translate-loading-spinner",
    )
    noise_class_patterns: Tuple[str, ...] = (
        r"^immersive-translate-(?:popup|float-ball|modal|toast|error|page-popup|manga)",
        r"^imt-",
        r"^Toastify",
        r"^tippy-",
        r"^ant-(?:message|notification|tooltip)",
        r"^el-(?:popper|message|notification)",
    )
    content_container_ids: Tuple[str, ...] = (
        "immersive-translate-container",
        "preview-content",
        "readability-page-1",
    )
    math_source_tags: Tuple[str, ...] = ("tex-math",)
    math_source_classes: Tuple[str, ...] = ("math-tex",)
    math_render_tags: Tuple[str, ...] = ("mjx-container", "mjx-assistive-mml", "math", "svg")
    math_render_classes: Tuple[str, ...] = ("MathJax_SVG", "MathJax_CHTML", "katex-html")
    redundant_math_tags: Tuple[str, ...] = ("mjx-assistive-mml", "math")
    vector_math_tag: str = "mjx-container"
    _noise_res: Tuple[re.Pattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._noise_res = tuple(re.compile(p) for p in self.noise_class_patterns)

    def is_noise_class(self, classes: Iterable[str]) -> bool:
        for cls in classes:
            if cls in self.input_artifact_classes:
                return True
            if any(rx.search(cls) for rx in self._noise_res):
                return True
        return False

    def is_math_source(self, tag) -> bool:
        if tag.name in self.math_source_tags:
            return True
        return any(cls in self.math_source_classes for cls in tag_classes(tag))

    def is_math_render(self, tag) -> bool:
        if tag.name in self.math_render_tags:
            return True
        return any(cls in self.math_render_classes for cls in tag_classes(tag))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for item in fields(self):
            if not item.init:
                continue
            value = getattr(self, item.name)
            data[item.name] = list(value) if isinstance(value, tuple) else value
        return data


def tag_classes(tag) -> list:
    value = tag.get("class") if hasattr(tag, "get") else None
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return [str(item) for item in value]


def is_inline_hidden(tag) -> bool:
    style = tag.get("style") or ""
    return bool(INLINE_HIDDEN_RE.search(str(style)))


def is_aria_hidden(tag) -> bool:
    return str(tag.get("aria-hidden") or "").strip().lower() == "true"


def load_matchers_file(path: Path) -> OverlayMatchers:
    try:
        data_raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except Exception as exc:
        raise ValueError(f"Unable to read matchers file {path}: {exc}") from exc
    if not isinstance(data_raw, dict):
        raise ValueError(f"Matchers file {path} must contain a JSON object")

    defaults = OverlayMatchers()
    known = {f.name: f for f in fields(OverlayMatchers) if f.init}
    kwargs: Dict[str, Any] = {}
    for key, value in data_raw.items():
        if key not in known:
            raise ValueError(f"Matchers file {path} has unknown key: {key}")
        expected = getattr(defaults, key)
        if isinstance(expected, tuple):
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ValueError(f"Matchers file {path} key {key} must be a list of strings")
            value = tuple(value)
        elif not isinstance(value, str) or not value.strip():
            raise ValueError(f"Matchers file {path} key {key} must be a non-empty string")
        kwargs[key] = value
    try:
        return OverlayMatchers(**kwargs)
    except re.error as exc:
        raise ValueError(f"Matchers file {path} has an invalid noise pattern: {exc}") from exc


def write_matchers_file(path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(OverlayMatchers().to_dict(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
