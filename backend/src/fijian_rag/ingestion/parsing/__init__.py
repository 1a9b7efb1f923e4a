"""Dictionary entry parsing

Ordered pattern matchers, OCR line cleanup and headword plausibility checks.
"""

from .cleaning import clean_line, is_header_or_page_number, is_section_marker
from .parser import DictionaryParser, ParseResult, parse_entries
from .patterns import (
    DEFAULT_MATCHERS,
    ColonMatcher,
    DashMatcher,
    EntryMatcher,
    NumberedEntryMatcher,
    ParentheticalMatcher,
    PatternMatch,
    PeriodMatcher,
    SimplePosMatcher,
    match_entry,
)
from .phonology import FIJIAN, LanguageProfile, is_plausible_headword, tokenize_fijian_text

__all__ = [
    'DEFAULT_MATCHERS',
    'FIJIAN',
    'ColonMatcher',
    'DashMatcher',
    'DictionaryParser',
    'EntryMatcher',
    'LanguageProfile',
    'NumberedEntryMatcher',
    'ParentheticalMatcher',
    'ParseResult',
    'PatternMatch',
    'PeriodMatcher',
    'SimplePosMatcher',
    'clean_line',
    'is_header_or_page_number',
    'is_plausible_headword',
    'is_section_marker',
    'match_entry',
    'parse_entries',
    'tokenize_fijian_text',
]
