"""Ordered entry matchers for dictionary lines.

Each matcher recognises one layout of a dictionary entry and can be tested on
its own. ``DEFAULT_MATCHERS`` lists them in priority order; the parser takes
the first match per line.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from re import Match, Pattern
from typing import List, Optional

HEADWORD = r"(?P<headword>[A-Za-z\u00C0-\u024F\u1E00-\u1EFF]+)"
POS_TOKEN = r"(?P<pos>(?:n|v|adj|adv|pron|prep|conj|int)\.)"

POS_EXPANSIONS = {
    "n.": "noun",
    "v.": "verb",
    "adj.": "adjective",
    "adv.": "adverb",
    "prep.": "preposition",
    "conj.": "conjunction",
    "int.": "interjection",
    "pron.": "pronoun",
}

ETYMOLOGY_MARKERS: List[Pattern[str]] = [
    re.compile(r"^Eng\.?$", re.IGNORECASE),  # English derived
    re.compile(r"^Lau$", re.IGNORECASE),  # Lau dialect
    re.compile(r"^Bau$", re.IGNORECASE),  # Bau dialect
    re.compile(r"^Fij\.?$", re.IGNORECASE),  # Fijian origin
    re.compile(r"^archaic$", re.IGNORECASE),
]


def expand_part_of_speech(token: str) -> str:
    """Expand an abbreviated part of speech (``n.`` -> ``noun``)."""
    return POS_EXPANSIONS.get(token.lower(), token)


def is_part_of_speech(token: str) -> bool:
    lowered = token.strip().lower()
    return lowered in POS_EXPANSIONS or lowered in POS_EXPANSIONS.values()


def is_etymology_marker(token: str) -> bool:
    return any(p.match(token.strip()) for p in ETYMOLOGY_MARKERS)


@dataclass
class PatternMatch:
    """Fields extracted from one line by one matcher."""

    headword: str
    definition: str
    pattern_id: int
    pattern_name: str
    base_confidence: float
    part_of_speech: Optional[str] = None
    entry_number: Optional[int] = None
    etymology: Optional[str] = None
    notes: List[str] = field(default_factory=list)


class EntryMatcher(ABC):
    """A named strategy that tries to read a line as a new entry."""

    pattern_id: int
    name: str
    base_confidence: float
    regex: Pattern[str]

    def match(self, line: str) -> Optional[PatternMatch]:
        m = self.regex.match(line)
        if not m:
            return None
        result = self._build(m)
        if result is None:
            return None
        result.headword = result.headword.strip()
        result.definition = result.definition.strip()
        return result

    @abstractmethod
    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        ...

    def _new(self, m: Match[str], definition: str, **kwargs) -> PatternMatch:
        return PatternMatch(
            headword=m.group("headword"),
            definition=definition,
            pattern_id=self.pattern_id,
            pattern_name=self.name,
            base_confidence=self.base_confidence,
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.pattern_id} name={self.name}>"


class NumberedEntryMatcher(EntryMatcher):
    """``koko 2. (Eng.) n. definition`` - homograph number, optional etymology and POS.

    The definition may be empty (``kana 2.``); it is then filled from the
    following continuation lines.
    """

    pattern_id = 1
    name = "numbered"
    base_confidence = 70
    regex = re.compile(
        rf"^{HEADWORD}\s*(?P<number>\d+)\.\s*(?:\((?P<paren>[^)]+)\)\s*)?(?:{POS_TOKEN}\s+)?(?P<definition>.*)$"
    )

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        notes = ["Numbered entry"]
        etymology = None
        pos = None
        paren = m.group("paren")
        if paren:
            if is_part_of_speech(paren):
                pos = expand_part_of_speech(paren.strip())
            else:
                etymology = paren.strip()
                notes.append(f"Etymology: {etymology}")
        if m.group("pos"):
            pos = expand_part_of_speech(m.group("pos"))
        if pos:
            notes.append(f"Part of speech: {pos}")
        return self._new(
            m,
            m.group("definition"),
            entry_number=int(m.group("number")),
            etymology=etymology,
            part_of_speech=pos,
            notes=notes,
        )


class ParentheticalMatcher(EntryMatcher):
    """``word (pos) definition``; a non-POS parenthetical is kept as etymology."""

    pattern_id = 2
    name = "parenthetical"
    base_confidence = 75
    regex = re.compile(
        rf"^{HEADWORD}\s*\((?P<paren>[^)]+)\)\s*(?:{POS_TOKEN}\s+)?(?P<definition>.+)$"
    )

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        paren = m.group("paren").strip()
        pos = None
        etymology = None
        notes = []
        if is_part_of_speech(paren):
            pos = expand_part_of_speech(paren)
        else:
            etymology = paren
            notes.append("Entry with etymology")
        if m.group("pos"):
            pos = expand_part_of_speech(m.group("pos"))
        if pos:
            notes.append(f"Part of speech: {pos}")
        return self._new(
            m, m.group("definition"), part_of_speech=pos, etymology=etymology, notes=notes
        )


class DashMatcher(EntryMatcher):
    """``word - definition`` with hyphen, en-dash or em-dash."""

    pattern_id = 3
    name = "dash"
    base_confidence = 90
    regex = re.compile(rf"^{HEADWORD}\s*[-–—]\s*(?P<definition>.+)$")

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        return self._new(m, m.group("definition"), notes=["Dash-separated entry"])


class PeriodMatcher(EntryMatcher):
    """``word. definition``"""

    pattern_id = 4
    name = "period"
    base_confidence = 80
    regex = re.compile(rf"^{HEADWORD}\.\s*(?P<definition>.+)$")

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        return self._new(m, m.group("definition"), notes=["Period-separated entry"])


class ColonMatcher(EntryMatcher):
    """``word: definition``"""

    pattern_id = 5
    name = "colon"
    base_confidence = 85
    regex = re.compile(rf"^{HEADWORD}\s*:\s*(?P<definition>.+)$")

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        return self._new(m, m.group("definition"), notes=["Colon-separated entry"])


class SimplePosMatcher(EntryMatcher):
    """``word n. definition``"""

    pattern_id = 6
    name = "simple_pos"
    base_confidence = 80
    regex = re.compile(rf"^{HEADWORD}\s+{POS_TOKEN}\s+(?P<definition>.+)$")

    def _build(self, m: Match[str]) -> Optional[PatternMatch]:
        pos = expand_part_of_speech(m.group("pos"))
        return self._new(
            m, m.group("definition"), part_of_speech=pos, notes=[f"Part of speech: {pos}"]
        )


DEFAULT_MATCHERS: List[EntryMatcher] = [
    NumberedEntryMatcher(),
    ParentheticalMatcher(),
    DashMatcher(),
    PeriodMatcher(),
    ColonMatcher(),
    SimplePosMatcher(),
]


def match_entry(line: str, matchers: Optional[List[EntryMatcher]] = None) -> Optional[PatternMatch]:
    """Return the first matcher result for ``line`` in priority order."""
    for matcher in matchers or DEFAULT_MATCHERS:
        result = matcher.match(line)
        if result is not None:
            return result
    return None
