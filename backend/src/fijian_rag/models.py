"""Data models for the curation pipeline.

Each stage emits new records rather than mutating shared ones. Conversion to
and from DynamoDB items and OpenSearch documents lives only in the
``to_dict``/``from_dict``/``to_source`` helpers below.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DataKind(str, Enum):
    """Kinds of curated pairs with their own verified-store key schema."""

    TRANSLATION = "translation"
    VOCAB = "vocab"


class MatchType(str, Enum):
    LEXICAL = "lexical"
    VECTOR = "vector"


def build_dedup_key(key1: str, key2: str) -> str:
    """
    Build the normalized composite key used to detect duplicates.

    Casing differences and surrounding whitespace are ignored, so
    ``" Bula "`` / ``"Hello"`` and ``"bula"`` / ``"hello"`` collide.
    """
    return f"{key1.strip().lower()}::{key2.strip().lower()}"


def build_document_id(source: str, *identifiers: Any) -> str:
    """
    Derive a stable search-index document id from source identifiers.

    Re-processing the same source produces the same id, so indexing
    overwrites instead of appending.
    """
    source_hash = hashlib.md5(source.encode("utf-8")).hexdigest()
    if not identifiers:
        return source_hash
    suffix = "#".join(str(i) for i in identifiers)
    return f"{source_hash}#{suffix}"


@dataclass(frozen=True)
class TextBlock:
    """A line-based logical block produced by segmentation (not persisted)."""

    raw_text: str
    line_range: Tuple[int, int]
    is_header: bool = False

    @property
    def lines(self) -> List[str]:
        return self.raw_text.split("\n")


@dataclass(frozen=True)
class SourceMetadata:
    """Where an entry came from and how it was recognised."""

    original_text: str
    pattern_id: int
    page_or_block_ref: str = ""
    line_numbers: Tuple[int, ...] = ()
    parsing_notes: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "originalText": self.original_text,
            "patternId": self.pattern_id,
            "pageOrBlockRef": self.page_or_block_ref,
            "lineNumbers": list(self.line_numbers),
            "parsingNotes": list(self.parsing_notes),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SourceMetadata":
        return cls(
            original_text=data.get("originalText", ""),
            pattern_id=int(data.get("patternId", 0)),
            page_or_block_ref=data.get("pageOrBlockRef", ""),
            line_numbers=tuple(data.get("lineNumbers", [])),
            parsing_notes=tuple(data.get("parsingNotes", [])),
        )


@dataclass(frozen=True)
class DictionaryEntry:
    """
    A candidate (or verified) dictionary entry.

    ``headword`` keeps the original casing for display; comparisons use
    ``normalized_headword``.
    """

    headword: str
    definition: str
    confidence: float
    source_metadata: SourceMetadata
    part_of_speech: Optional[str] = None
    entry_number: Optional[int] = None
    etymology: Optional[str] = None
    continuation_lines: int = 0
    examples: Tuple[str, ...] = ()
    cross_references: Tuple[str, ...] = ()
    pronunciation: Optional[str] = None
    plausible_headword: bool = True

    @property
    def normalized_headword(self) -> str:
        return self.headword.strip().lower()

    def to_translation_pair(self) -> "TranslationPair":
        return TranslationPair(
            source_text=self.headword,
            target_text=self.definition,
            confidence=self.confidence,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for DynamoDB storage or export."""
        return {
            "headword": self.headword,
            "definition": self.definition,
            "partOfSpeech": self.part_of_speech,
            "confidence": self.confidence,
            "entryNumber": self.entry_number,
            "etymology": self.etymology,
            "continuationLines": self.continuation_lines,
            "examples": list(self.examples),
            "crossReferences": list(self.cross_references),
            "pronunciation": self.pronunciation,
            "plausibleHeadword": self.plausible_headword,
            "sourceMetadata": self.source_metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DictionaryEntry":
        """Create from dictionary (DynamoDB item)."""
        return cls(
            headword=data.get("headword", ""),
            definition=data.get("definition", ""),
            part_of_speech=data.get("partOfSpeech"),
            confidence=float(data.get("confidence", 0)),
            entry_number=data.get("entryNumber"),
            etymology=data.get("etymology"),
            continuation_lines=int(data.get("continuationLines", 0)),
            examples=tuple(data.get("examples", [])),
            cross_references=tuple(data.get("crossReferences", [])),
            pronunciation=data.get("pronunciation"),
            plausible_headword=data.get("plausibleHeadword", True),
            source_metadata=SourceMetadata.from_dict(data.get("sourceMetadata", {})),
        )


@dataclass(frozen=True)
class TranslationPair:
    """Unit of storage for dictionary entries and article-paragraph translations."""

    source_text: str
    target_text: str
    source_language: str = "fj"
    target_language: str = "en"
    verified: bool = False
    embedding: Optional[Tuple[float, ...]] = None
    confidence: float = 0.0

    @property
    def dedup_key(self) -> str:
        return build_dedup_key(self.source_text, self.target_text)

    def to_dict(self) -> dict:
        return {
            "sourceText": self.source_text,
            "targetText": self.target_text,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
            "verified": self.verified,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationPair":
        embedding = data.get("embedding")
        return cls(
            source_text=data.get("sourceText", ""),
            target_text=data.get("targetText", ""),
            source_language=data.get("sourceLanguage", "fj"),
            target_language=data.get("targetLanguage", "en"),
            verified=bool(data.get("verified", False)),
            embedding=tuple(embedding) if embedding else None,
            confidence=float(data.get("confidence", 0)),
        )


@dataclass(frozen=True)
class IndexDocument:
    """A document in the hybrid search index."""

    id: str
    original_text: str
    translated_text: str
    embedding: Tuple[float, ...]
    verified: bool
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_source(self) -> dict:
        """Convert to the OpenSearch ``_source`` body."""
        body = dict(self.metadata)
        body.update(
            {
                "originalText": self.original_text,
                "translatedText": self.translated_text,
                "embedding": list(self.embedding),
                "verified": self.verified,
                "source": self.source,
            }
        )
        return body

    @classmethod
    def from_source(cls, doc_id: str, source: dict) -> "IndexDocument":
        known = {"originalText", "translatedText", "embedding", "verified", "source"}
        return cls(
            id=doc_id,
            original_text=source.get("originalText", ""),
            translated_text=source.get("translatedText", ""),
            embedding=tuple(source.get("embedding") or ()),
            verified=bool(source.get("verified", False)),
            source=source.get("source", ""),
            metadata={k: v for k, v in source.items() if k not in known},
        )


@dataclass(frozen=True)
class ScoredDocument:
    """A search hit returned to the text-generation step."""

    id: str
    score: float
    original_text: str
    translated_text: str
    verified: bool
    source: str
    match_type: MatchType

    @classmethod
    def from_hit(cls, hit: dict, match_type: MatchType) -> "ScoredDocument":
        """Create from an OpenSearch hit."""
        source = hit.get("_source", {})
        return cls(
            id=hit.get("_id", ""),
            score=float(hit.get("_score") or 0.0),
            original_text=source.get("originalText", ""),
            translated_text=source.get("translatedText", ""),
            verified=bool(source.get("verified", False)),
            source=source.get("source", ""),
            match_type=match_type,
        )


@dataclass
class ParsingStats:
    """Quality triage counters reported alongside parsed entries."""

    total_lines: int = 0
    entries_found: int = 0
    malformed_entries: int = 0
    continuation_lines: int = 0
    high_confidence: int = 0  # >= 90
    medium_confidence: int = 0  # 70-89
    low_confidence: int = 0  # < 70
    errors: List[str] = field(default_factory=list)

    def record_confidence(self, confidence: float) -> None:
        if confidence >= 90:
            self.high_confidence += 1
        elif confidence >= 70:
            self.medium_confidence += 1
        else:
            self.low_confidence += 1

    def to_dict(self) -> dict:
        return {
            "totalLines": self.total_lines,
            "entriesFound": self.entries_found,
            "malformedEntries": self.malformed_entries,
            "continuationLines": self.continuation_lines,
            "confidenceDistribution": {
                "high": self.high_confidence,
                "medium": self.medium_confidence,
                "low": self.low_confidence,
            },
            "errors": list(self.errors),
        }
