"""Sentence segmentation and conservative bilingual alignment."""

from __future__ import annotations

import re
from typing import List

from .models import AlignedSentence

HANGUL_RE = re.compile(r"[\uac00-\ud7af\u1100-\u11ff\u3130-\u318f\ua960-\ua97f\ud7b0-\ud7ff]")
LATIN_RE = re.compile(r"[A-Za-z]")

SENTENCE_END_RE = re.compile(r"[.!?。！？]+[\"'”’)\]]*(?=\s|$)")
ABBREVIATION_END_RE = re.compile(
    r"(?:\b(?:e\.g|i\.e|et al|etc|vs|cf|approx|resp|Fig|Figs|Eq|Eqs|Sec|Secs|Tab|Ref|Refs|No|Dr|Mr|Mrs|Ms|Prof|Jr|Sr|St|Vol|pp)"
    r"|\b[A-Z])\.$"
)
MATH_FRAGMENT_RE = re.compile(r"^[\d%\[\](),. *†‡§#=+\-<>~\\a-z]{1,5}$", re.IGNORECASE)
PARTICLE_FRAGMENT_RE = re.compile(r"^[은는이가을를에의로과와, ]{1,3}$")
TERMINAL_RE = re.compile(r"[.!?。！？][\"'”’)\]]*$")
SHORT_FRAGMENT_LEN = 10


def is_secondary_script(text: str) -> bool:
    """True when Hangul letters make up at least half of the letters in ``text``."""
    hangul = len(HANGUL_RE.findall(text or ""))
    if not hangul:
        return False
    latin = len(LATIN_RE.findall(text))
    return hangul >= latin


def _raw_segments(text: str) -> List[str]:
    segments: List[str] = []
    start = 0
    for match in SENTENCE_END_RE.finditer(text):
        piece = text[start : match.end()].strip()
        if piece:
            segments.append(piece)
        start = match.end()
    tail = text[start:].strip()
    if tail:
        segments.append(tail)
    return segments


def _is_noise_fragment(fragment: str, primary: bool) -> bool:
    if MATH_FRAGMENT_RE.match(fragment):
        return True
    if not primary and PARTICLE_FRAGMENT_RE.match(fragment):
        return True
    return len(fragment) < SHORT_FRAGMENT_LEN and not TERMINAL_RE.search(fragment)


def split_sentences(text: str, *, primary: bool = True) -> List[str]:
    refined: List[str] = []
    for segment in _raw_segments(text or ""):
        if refined:
            if primary and ABBREVIATION_END_RE.search(refined[-1]):
                refined[-1] = f"{refined[-1]} {segment}"
                continue
            if _is_noise_fragment(segment, primary):
                refined[-1] = f"{refined[-1]} {segment}"
                continue
        refined.append(segment)
    return refined


def align_sentences(en_text: str, ko_text: str) -> List[AlignedSentence]:
    """Pair sentences by index only when both sides segment into the same count.

    Any mismatch collapses to one pair covering the whole block.
    """
    en_sentences = split_sentences(en_text, primary=True)
    ko_sentences = split_sentences(ko_text, primary=False)
    if not en_sentences and not ko_sentences:
        return []
    if len(en_sentences) == len(ko_sentences) and len(en_sentences) > 1:
        return [AlignedSentence(en=en, ko=ko) for en, ko in zip(en_sentences, ko_sentences)]
    return [AlignedSentence(en=(en_text or "").strip(), ko=(ko_text or "").strip())]
