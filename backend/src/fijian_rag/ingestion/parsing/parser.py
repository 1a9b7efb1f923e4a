"""Dictionary entry parser

Turns noisy PDF/OCR text into structured dictionary entries using the ordered
matchers in ``patterns``. Lines that do not start a new entry are merged into
the entry being built.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from fijian_rag.errors import MalformedInputError
from fijian_rag.models import DictionaryEntry, ParsingStats, SourceMetadata, TextBlock

from .cleaning import (
    clean_line,
    extract_page_number,
    is_header_or_page_number,
    is_section_marker,
)
from .patterns import DEFAULT_MATCHERS, EntryMatcher, PatternMatch, is_etymology_marker
from .phonology import FIJIAN, LanguageProfile, is_plausible_headword

logger = logging.getLogger(__name__)

PHONOLOGY_PENALTY = 30.0
ETYMOLOGY_BONUS = 5.0
EXAMPLE_BONUS = 5.0

_SEE_ALSO = re.compile(r"see also\s+([A-Za-z\u00C0-\u024F\u1E00-\u1EFF\s,]+)", re.IGNORECASE)
_SYNONYM = re.compile(r"syn\.\s+([A-Za-z\u00C0-\u024F\u1E00-\u1EFF\s,]+)", re.IGNORECASE)
_EXAMPLE_PREFIX = re.compile(r"^(example|e\.g\.|eg\.)\s*:?\s*", re.IGNORECASE)
_CONTINUATION_MARKER = re.compile(r"^(?:example\b|e\.g\.|eg\.|syn\.|see also\b)", re.IGNORECASE)
_BILINGUAL_EXAMPLE = re.compile(r"[A-Z][a-z]+ .+ - [A-Z][a-z]+")
_BRACKETED = re.compile(r"\[([^\]]+)\]")

LineInput = Union[str, TextBlock]


@dataclass
class ParseResult:
    entries: List[DictionaryEntry]
    stats: ParsingStats


@dataclass
class _Line:
    text: str
    number: int
    block_ref: Optional[str] = None


@dataclass
class _EntryBuilder:
    """Mutable accumulator for the entry currently being read."""

    match: PatternMatch
    original_text: str
    page_or_block_ref: str
    line_numbers: List[int]
    definition_parts: List[str] = field(default_factory=list)
    continuation_lines: int = 0
    examples: List[str] = field(default_factory=list)
    cross_references: List[str] = field(default_factory=list)
    pronunciation: Optional[str] = None

    def add_continuation(self, line: _Line) -> None:
        # Marked example and cross-reference lines stay out of the definition
        if not _CONTINUATION_MARKER.match(line.text):
            self.definition_parts.append(line.text)
        self.line_numbers.append(line.number)
        self.continuation_lines += 1

        if _is_example(line.text):
            self.examples.append(_EXAMPLE_PREFIX.sub("", line.text).lstrip("-•* ").strip())
        refs = _cross_references(line.text)
        if refs:
            self.cross_references.extend(refs)
        if self.pronunciation is None and _is_pronunciation(line.text):
            bracketed = _BRACKETED.search(line.text)
            self.pronunciation = bracketed.group(1) if bracketed else line.text


class DictionaryParser:
    """
    Parser for dictionary-style text.

    Matchers are tried in priority order and the first match wins per line.
    Parsing never raises for malformed content: questionable entries are
    emitted with a lower confidence so review can triage them.
    """

    def __init__(
        self,
        matchers: Optional[Sequence[EntryMatcher]] = None,
        profile: LanguageProfile = FIJIAN,
        phonology_penalty: float = PHONOLOGY_PENALTY,
    ):
        self.matchers = list(matchers) if matchers is not None else list(DEFAULT_MATCHERS)
        self.profile = profile
        self.phonology_penalty = phonology_penalty

    def match_line(self, line: str) -> Optional[PatternMatch]:
        """Try each matcher on a cleaned line."""
        for matcher in self.matchers:
            result = matcher.match(line)
            if result is not None:
                return result
        return None

    def parse(self, blocks_or_lines: Union[str, Sequence[LineInput]]) -> ParseResult:
        """
        Parse text blocks or lines into dictionary entries.

        Args:
            blocks_or_lines: Raw text, or a sequence of lines and/or TextBlocks

        Returns:
            ParseResult with the emitted entries and quality stats

        Raises:
            MalformedInputError: If the input is not text or a sequence of text
        """
        lines = list(self._iter_lines(blocks_or_lines))
        stats = ParsingStats(total_lines=len(lines))
        entries: List[DictionaryEntry] = []
        current: Optional[_EntryBuilder] = None
        page: Optional[int] = None

        for line in lines:
            cleaned = clean_line(line.text)
            if not cleaned:
                continue

            if is_header_or_page_number(cleaned) or is_section_marker(cleaned):
                page = extract_page_number(cleaned) or page
                continue

            # "Example: ...", "e.g. ...", "Syn. ..." would otherwise read as new entries
            if current is not None and _CONTINUATION_MARKER.match(cleaned):
                match = None
            else:
                match = self.match_line(cleaned)
            if match is not None:
                if current is not None:
                    self._finalize(current, entries, stats)
                if page is not None:
                    ref = f"page:{page}"
                elif line.block_ref:
                    ref = line.block_ref
                else:
                    ref = f"line:{line.number}"
                current = _EntryBuilder(
                    match=match,
                    original_text=cleaned,
                    page_or_block_ref=ref,
                    line_numbers=[line.number],
                )
                continue

            if current is not None:
                current.add_continuation(_Line(cleaned, line.number, line.block_ref))
                stats.continuation_lines += 1
            elif len(cleaned) > 10:
                stats.errors.append(f"Unmatched line {line.number}: {cleaned[:50]!r}")

        if current is not None:
            self._finalize(current, entries, stats)

        logger.info(
            f"Parsing completed: {stats.entries_found} entries found, "
            f"{stats.malformed_entries} malformed, "
            f"{stats.continuation_lines} continuation lines"
        )
        return ParseResult(entries=entries, stats=stats)

    def parse_entries(self, blocks_or_lines: Union[str, Sequence[LineInput]]) -> List[DictionaryEntry]:
        """Parse and return just the entries."""
        return self.parse(blocks_or_lines).entries

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _iter_lines(self, blocks_or_lines) -> Iterator[_Line]:
        if blocks_or_lines is None:
            raise MalformedInputError("No text supplied to parser", field="blocks")

        if isinstance(blocks_or_lines, str):
            items: Iterable = [blocks_or_lines]
        elif isinstance(blocks_or_lines, TextBlock):
            items = [blocks_or_lines]
        elif isinstance(blocks_or_lines, (list, tuple)):
            items = blocks_or_lines
        else:
            raise MalformedInputError(
                f"Expected text or a sequence of lines, got {type(blocks_or_lines).__name__}",
                field="blocks",
            )

        number = 0
        for index, item in enumerate(items):
            if isinstance(item, TextBlock):
                start = item.line_range[0]
                for offset, text in enumerate(item.raw_text.split("\n")):
                    if text.strip():
                        yield _Line(text.strip(), start + offset, f"block:{index}")
                number = max(number, item.line_range[1])
            elif isinstance(item, str):
                for text in item.split("\n"):
                    number += 1
                    if text.strip():
                        yield _Line(text.strip(), number)
            else:
                raise MalformedInputError(
                    f"Item {index} is {type(item).__name__}, expected str or TextBlock",
                    field="blocks",
                )

    def _score(self, builder: _EntryBuilder, plausible: bool) -> float:
        match = builder.match
        confidence = float(match.base_confidence)
        if not plausible:
            confidence -= self.phonology_penalty
        if match.etymology and is_etymology_marker(match.etymology):
            confidence += ETYMOLOGY_BONUS
        if builder.examples:
            confidence += EXAMPLE_BONUS
        return max(0.0, min(100.0, confidence))

    def _finalize(
        self,
        builder: _EntryBuilder,
        entries: List[DictionaryEntry],
        stats: ParsingStats,
    ) -> None:
        match = builder.match
        headword = match.headword.strip()
        definition = " ".join([match.definition, *builder.definition_parts])
        definition = re.sub(r"\s+", " ", definition).strip()

        if not headword or not definition:
            stats.malformed_entries += 1
            return

        plausible = is_plausible_headword(headword, self.profile)
        notes: Tuple[str, ...] = tuple(match.notes)
        if not plausible:
            notes += (f"Headword fails {self.profile.name} phonology check",)
        if builder.continuation_lines:
            notes += (f"Merged {builder.continuation_lines} continuation lines",)

        confidence = self._score(builder, plausible)
        entry = DictionaryEntry(
            headword=headword,
            definition=definition,
            part_of_speech=match.part_of_speech,
            confidence=confidence,
            entry_number=match.entry_number,
            etymology=match.etymology,
            continuation_lines=builder.continuation_lines,
            examples=tuple(builder.examples),
            cross_references=tuple(builder.cross_references),
            pronunciation=builder.pronunciation,
            plausible_headword=plausible,
            source_metadata=SourceMetadata(
                original_text=builder.original_text,
                pattern_id=match.pattern_id,
                page_or_block_ref=builder.page_or_block_ref,
                line_numbers=tuple(builder.line_numbers),
                parsing_notes=notes,
            ),
        )
        entries.append(entry)
        stats.entries_found += 1
        stats.record_confidence(confidence)


def _is_example(line: str) -> bool:
    if _EXAMPLE_PREFIX.match(line):
        return True
    return " - " in line and bool(_BILINGUAL_EXAMPLE.search(line))


def _is_pronunciation(line: str) -> bool:
    lowered = line.lower()
    return ("[" in line and "]" in line) or "pronounced" in lowered or "pronunciation" in lowered


def _cross_references(line: str) -> List[str]:
    refs: List[str] = []
    for pattern in (_SEE_ALSO, _SYNONYM):
        match = pattern.search(line)
        if match:
            refs.extend(r.strip() for r in match.group(1).split(","))
    return [r for r in refs if r]


_default_parser = DictionaryParser()


def parse_entries(blocks_or_lines: Union[str, Sequence[LineInput]]) -> List[DictionaryEntry]:
    """Parse with the default Fijian matchers."""
    return _default_parser.parse_entries(blocks_or_lines)
