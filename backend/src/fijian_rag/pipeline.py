"""End-to-end dictionary ingestion

segment -> parse -> dedup -> embed + index, strictly in that order. Each
stage hands new records to the next; nothing is shared between runs.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fijian_rag.config import get_settings
from fijian_rag.dedup import DedupChecker
from fijian_rag.ingestion.parsing import DictionaryParser
from fijian_rag.ingestion.segmentation import TextBlockSegmenter
from fijian_rag.models import DataKind, DictionaryEntry, ParsingStats, build_dedup_key
from fijian_rag.search import BatchIndexReport, IndexItem, TranslationIndexer

logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    """Outcome of one ingestion run."""

    source: str
    blocks: int = 0
    entries_parsed: int = 0
    entries_filtered: int = 0
    duplicates_skipped: List[str] = field(default_factory=list)
    indexed_ids: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    stats: Optional[ParsingStats] = None

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "blocks": self.blocks,
            "entriesParsed": self.entries_parsed,
            "entriesFiltered": self.entries_filtered,
            "duplicatesSkipped": list(self.duplicates_skipped),
            "indexedIds": list(self.indexed_ids),
            "failed": dict(self.failed),
            "stats": self.stats.to_dict() if self.stats else None,
        }


class DictionaryIngestionPipeline:
    """
    Orchestrates the curation chain for one source document.

    Args:
        segmenter: Splits raw text into blocks
        parser: Turns blocks into scored entries
        dedup: Filters entries already pending or verified
        indexer: Embeds and writes the remaining entries
        min_confidence: Entries scoring below this are not indexed
        drop_implausible: Skip entries whose headword fails the phonology check
    """

    def __init__(
        self,
        segmenter: Optional[TextBlockSegmenter] = None,
        parser: Optional[DictionaryParser] = None,
        dedup: Optional[DedupChecker] = None,
        indexer: Optional[TranslationIndexer] = None,
        min_confidence: float = 0.0,
        drop_implausible: bool = False,
        max_concurrency: Optional[int] = None,
    ):
        self.segmenter = segmenter or TextBlockSegmenter()
        self.parser = parser or DictionaryParser()
        self.dedup = dedup or DedupChecker()
        self.indexer = indexer or TranslationIndexer()
        self.min_confidence = min_confidence
        self.drop_implausible = drop_implausible
        self.max_concurrency = max_concurrency

    async def run(self, raw_text: str, source: str) -> PipelineReport:
        """
        Ingest one document's text.

        Args:
            raw_text: Extracted text of the document
            source: Stable source identifier (URL or S3 key) used for document ids

        Returns:
            PipelineReport with counts, skipped duplicates and failed ids
        """
        report = PipelineReport(source=source)

        blocks = self.segmenter.segment(raw_text)
        report.blocks = len(blocks)

        result = self.parser.parse(blocks)
        report.stats = result.stats
        report.entries_parsed = len(result.entries)

        candidates = self._filter(result.entries)
        report.entries_filtered = len(result.entries) - len(candidates)

        new_entries = await self._drop_duplicates(candidates, report)
        if not new_entries:
            logger.info(f"No new entries to index for {source}")
            return report

        batch: BatchIndexReport = await self.indexer.index_batch(
            [IndexItem(item=entry, source=source, verified=False) for entry in new_entries],
            max_concurrency=self.max_concurrency,
        )
        report.indexed_ids = list(batch.succeeded)
        report.failed = dict(batch.failed)

        logger.info(
            f"Pipeline run for {source}: {report.entries_parsed} parsed, "
            f"{len(report.duplicates_skipped)} duplicates, {len(report.indexed_ids)} indexed, "
            f"{len(report.failed)} failed"
        )
        return report

    def _filter(self, entries: List[DictionaryEntry]) -> List[DictionaryEntry]:
        kept = []
        for entry in entries:
            if entry.confidence < self.min_confidence:
                continue
            if self.drop_implausible and not entry.plausible_headword:
                continue
            kept.append(entry)
        return kept

    async def _drop_duplicates(
        self, entries: List[DictionaryEntry], report: PipelineReport
    ) -> List[DictionaryEntry]:
        # Within-document repeats collapse to the first occurrence
        unique: Dict[str, DictionaryEntry] = {}
        for entry in entries:
            key = build_dedup_key(entry.headword, entry.definition)
            if key in unique:
                report.duplicates_skipped.append(entry.headword)
            else:
                unique[key] = entry

        semaphore = asyncio.Semaphore(self.max_concurrency or get_settings().embedding_concurrency)

        async def check(entry: DictionaryEntry) -> bool:
            async with semaphore:
                return await self.dedup.is_duplicate(DataKind.VOCAB, entry.headword, entry.definition)

        flags = await asyncio.gather(*(check(e) for e in unique.values()))

        new_entries = []
        for entry, duplicate in zip(unique.values(), flags):
            if duplicate:
                report.duplicates_skipped.append(entry.headword)
            else:
                new_entries.append(entry)
        return new_entries
