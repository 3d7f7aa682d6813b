"""Paragraph-oriented document model produced by the parser."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PARAGRAPH_TYPES = ("text", "heading", "image", "table", "code")


@dataclass
class AlignedSentence:
    en: str
    ko: str

    def to_dict(self) -> Dict[str, Any]:
        return {"en": self.en, "ko": self.ko}


@dataclass
class Citation:
    id: str
    paragraph_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.paragraph_id is not None:
            data["paragraphId"] = self.paragraph_id
        return data


@dataclass
class ParagraphMetadata:
    heading_level: Optional[int] = None
    heading_id: Optional[str] = None
    src: Optional[str] = None
    alt: Optional[str] = None
    caption: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "headingLevel": self.heading_level,
            "headingId": self.heading_id,
            "src": self.src,
            "alt": self.alt,
            "caption": self.caption,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class ParagraphData:
    id: str
    type: str
    element: str
    en_text: str
    ko_text: str
    sentences: List[AlignedSentence]
    citations: List[Citation]
    index: int
    metadata: ParagraphMetadata = field(default_factory=ParagraphMetadata)
    is_reference: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "element": self.element,
            "enText": self.en_text,
            "koText": self.ko_text,
            "sentences": [s.to_dict() for s in self.sentences],
            "citations": [c.to_dict() for c in self.citations],
            "index": self.index,
            "metadata": self.metadata.to_dict(),
            "isReference": self.is_reference,
        }


@dataclass
class TocItem:
    id: str
    text: str
    level: int
    paragraph_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "level": self.level, "paragraphId": self.paragraph_id}


@dataclass
class StructureEntry:
    paragraph_id: str
    desc: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.paragraph_id, "desc": self.desc}


@dataclass
class PaperStructure:
    toc: List[TocItem] = field(default_factory=list)
    figures: List[StructureEntry] = field(default_factory=list)
    tables: List[StructureEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "toc": [item.to_dict() for item in self.toc],
            "figures": [item.to_dict() for item in self.figures],
            "tables": [item.to_dict() for item in self.tables],
        }


@dataclass
class ParseResult:
    paragraphs: List[ParagraphData]
    structure: PaperStructure

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paragraphs": [p.to_dict() for p in self.paragraphs],
            "structure": self.structure.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParseResult":
        paragraphs = [_paragraph_from_dict(item) for item in data.get("paragraphs") or []]
        structure_raw = data.get("structure") or {}
        structure = PaperStructure(
            toc=[
                TocItem(
                    id=str(item["id"]),
                    text=str(item.get("text", "")),
                    level=int(item["level"]),
                    paragraph_id=str(item["paragraphId"]),
                )
                for item in structure_raw.get("toc") or []
            ],
            figures=[StructureEntry(str(item["id"]), str(item.get("desc", ""))) for item in structure_raw.get("figures") or []],
            tables=[StructureEntry(str(item["id"]), str(item.get("desc", ""))) for item in structure_raw.get("tables") or []],
        )
        return cls(paragraphs=paragraphs, structure=structure)


def _paragraph_from_dict(item: Dict[str, Any]) -> ParagraphData:
    meta_raw = item.get("metadata") or {}
    level = meta_raw.get("headingLevel")
    metadata = ParagraphMetadata(
        heading_level=int(level) if level is not None else None,
        heading_id=meta_raw.get("headingId"),
        src=meta_raw.get("src"),
        alt=meta_raw.get("alt"),
        caption=meta_raw.get("caption"),
    )
    paragraph_type = str(item.get("type", "text"))
    if paragraph_type not in PARAGRAPH_TYPES:
        raise ValueError(f"Unknown paragraph type: {paragraph_type}")
    return ParagraphData(
        id=str(item["id"]),
        type=paragraph_type,
        element=str(item.get("element", "div")),
        en_text=str(item.get("enText", "")),
        ko_text=str(item.get("koText", "")),
        sentences=[AlignedSentence(en=str(s.get("en", "")), ko=str(s.get("ko", ""))) for s in item.get("sentences") or []],
        citations=[Citation(id=str(c["id"]), paragraph_id=c.get("paragraphId")) for c in item.get("citations") or []],
        index=int(item.get("index", 0)),
        metadata=metadata,
        is_reference=bool(item.get("isReference", False)),
    )


def replace_paragraph(result: ParseResult, paragraph: ParagraphData) -> ParseResult:
    """Return a new result with the paragraph sharing ``paragraph.id`` swapped out.

    Every other paragraph keeps its identity, so annotation anchors stay valid.
    """
    for position, current in enumerate(result.paragraphs):
        if current.id == paragraph.id:
            updated = dataclasses.replace(paragraph, index=current.index)
            paragraphs = result.paragraphs[:position] + [updated] + result.paragraphs[position + 1 :]
            return ParseResult(paragraphs=paragraphs, structure=result.structure)
    raise KeyError(paragraph.id)
