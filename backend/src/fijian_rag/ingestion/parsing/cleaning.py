"""OCR artifact cleanup and header/page-number detection for dictionary text."""

import re
from re import Pattern
from typing import List, Optional, Tuple

# (pattern, replacement) applied in order
CLEANING_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"[“”]"), '"'),
    (re.compile(r"[‘’]"), "'"),
    (re.compile(r"…"), "..."),
    (re.compile(r"^\s*[|†*•]\s*"), ""),
    (re.compile(r"\s*\[\?\]\s*"), " "),
    (re.compile(r"FIJIAN\s*[–-]\s*ENGLISH\s*DICTIONARY.*$", re.IGNORECASE), ""),
    (re.compile(r"\s+"), " "),
]

HEADER_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^FIJIAN\s*[–-]\s*ENGLISH\s*DICTIONARY", re.IGNORECASE),
    re.compile(r"^R\.\s*GATTY$", re.IGNORECASE),
    re.compile(r"^Page\s+\d+", re.IGNORECASE),
    re.compile(r"^---\s*PAGE\s+\d+\s*---", re.IGNORECASE),
]

PAGE_NUMBER = re.compile(r"^\d+$")
SECTION_MARKER = re.compile(r"^[A-Z]$")

_PAGE_REFERENCE_PATTERNS = [
    re.compile(r"---\s*PAGE\s+(\d+)\s*---", re.IGNORECASE),
    re.compile(r"Page\s+(\d+)", re.IGNORECASE),
    re.compile(r"^\s*(\d+)\s*$", re.MULTILINE),
]


def clean_line(text: str) -> str:
    """Strip OCR artifacts and collapse whitespace."""
    cleaned = text
    for pattern, replacement in CLEANING_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned.strip()


def is_header_line(line: str) -> bool:
    """Document header/footer lines (title banner, author, page banners)."""
    return any(p.search(line) for p in HEADER_PATTERNS)


def is_page_number(line: str) -> bool:
    return bool(PAGE_NUMBER.match(line))


def is_section_marker(line: str) -> bool:
    """A single uppercase letter introducing an alphabetical section."""
    return bool(SECTION_MARKER.match(line))


def is_header_or_page_number(line: str) -> bool:
    return is_header_line(line) or is_page_number(line)


def extract_page_number(text: str) -> Optional[int]:
    """Find the first page reference in a chunk of extracted text."""
    for pattern in _PAGE_REFERENCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None
