"""Headword plausibility checks for the target language."""

import re
from dataclasses import dataclass
from typing import FrozenSet, List


@dataclass(frozen=True)
class LanguageProfile:
    """Permitted alphabet and vowels for a language's headwords."""

    name: str
    alphabet: FrozenSet[str]
    vowels: FrozenSet[str]
    min_length: int = 2
    max_length: int = 20


# Fijian orthography: a b c d e f g i j k l m n o p q r s t u v w y
FIJIAN = LanguageProfile(
    name="fijian",
    alphabet=frozenset("abcdefgijklmnopqrstuvwy"),
    vowels=frozenset("aeiou"),
)

_TOKEN_SPLIT = re.compile(r"[\W_]+", re.UNICODE)


def is_plausible_headword(word: str, profile: LanguageProfile = FIJIAN) -> bool:
    """
    Check whether ``word`` looks like a headword of the profile's language.

    This is a confidence signal, not a rejection gate: callers decide whether
    implausible headwords are dropped.
    """
    if not word:
        return False
    lowered = word.lower()
    if not profile.min_length <= len(lowered) <= profile.max_length:
        return False
    if any(ch not in profile.alphabet for ch in lowered):
        return False
    return any(ch in profile.vowels for ch in lowered)


def tokenize_fijian_text(text: str, profile: LanguageProfile = FIJIAN) -> List[str]:
    """Split free text into lowercase tokens that pass the plausibility check."""
    tokens = (t.strip() for t in _TOKEN_SPLIT.split(text.lower()))
    return [t for t in tokens if t and is_plausible_headword(t, profile)]
