"""Duplicate detection against pending and verified DynamoDB stores"""

from .checker import DedupChecker
from .repository import (
    VERIFIED_KEY_SCHEMA,
    PendingSubmissionRepository,
    VerifiedStoreRepository,
    coerce_kind,
)

__all__ = [
    'DedupChecker',
    'PendingSubmissionRepository',
    'VERIFIED_KEY_SCHEMA',
    'VerifiedStoreRepository',
    'coerce_kind',
]
