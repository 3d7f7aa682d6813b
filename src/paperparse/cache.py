"""Content-addressed cache for parse results, keyed by a hash of the raw input and its base reference."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

from .models import ParseResult

LOG = logging.getLogger("paperparse")

CACHE_KEY_PREFIX = "parse_v1_"


def cache_key(raw_markup: str, base_reference: str = "") -> str:
    digest = hashlib.sha256((raw_markup or "").encode("utf-8"))
    if base_reference:
        # relative image sources are rewritten against the base
        digest.update(b"\0")
        digest.update(base_reference.encode("utf-8"))
    return f"{CACHE_KEY_PREFIX}{digest.hexdigest()}"


class ParseCache:
    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, raw_markup: str, base_reference: str = "") -> Path:
        return self.cache_dir / f"{cache_key(raw_markup, base_reference)}.json"

    def load(self, raw_markup: str, base_reference: str = "") -> Optional[ParseResult]:
        path = self.path_for(raw_markup, base_reference)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ParseResult.from_dict(data)
        except Exception as exc:
            LOG.warning("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

    def store(self, raw_markup: str, result: ParseResult, base_reference: str = "") -> Path:
        path = self.path_for(raw_markup, base_reference)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(f"Unable to write cache entry {path}: {exc}") from exc
        return path
