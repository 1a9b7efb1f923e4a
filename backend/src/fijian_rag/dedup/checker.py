"""Duplicate detection across pending and verified submissions"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

from fijian_rag.models import build_dedup_key

from .repository import PendingSubmissionRepository, VerifiedStoreRepository, coerce_kind

logger = logging.getLogger(__name__)


class DedupChecker:
    """
    Decide whether a candidate pair is already known.

    A pair is a duplicate if it is pending review OR already verified. Missing
    keys fail closed (treated as duplicate) so incomplete pairs are never
    stored. Lookup failures propagate instead of reading as "no match".
    """

    def __init__(
        self,
        pending: Optional[PendingSubmissionRepository] = None,
        verified: Optional[VerifiedStoreRepository] = None,
    ):
        self.pending = pending or PendingSubmissionRepository()
        self.verified = verified or VerifiedStoreRepository()

    async def is_duplicate(self, kind: Any, key1: Optional[str], key2: Optional[str]) -> bool:
        """
        Check both stores for the pair.

        Args:
            kind: DataKind (or "translation"/"vocab")
            key1: Fijian text or word
            key2: English text or meaning

        Returns:
            True if the pair is incomplete, pending, or verified

        Raises:
            MalformedInputError: Unknown kind
            UpstreamServiceError: Either lookup failed
        """
        kind = coerce_kind(kind)
        if not _present(key1) or not _present(key2):
            logger.warning(f"Incomplete {kind.value} pair treated as duplicate: {key1!r} / {key2!r}")
            return True

        dedup_key = build_dedup_key(key1, key2)
        # Both lookups finish before any failure is raised
        results = await asyncio.gather(
            self.pending.exists_by_dedup_key(dedup_key),
            self.verified.exists(kind, key1, key2),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        in_pending, in_verified = results
        if in_pending or in_verified:
            logger.debug(f"Duplicate {kind.value} {dedup_key} (pending={in_pending}, verified={in_verified})")
        return in_pending or in_verified

    async def filter_new(self, kind: Any, pairs: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
        """Keep only pairs that are not duplicates, in input order."""
        flags = []
        for key1, key2 in pairs:
            flags.append(await self.is_duplicate(kind, key1, key2))
        return [pair for pair, duplicate in zip(pairs, flags) if not duplicate]


def _present(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(value.strip())
