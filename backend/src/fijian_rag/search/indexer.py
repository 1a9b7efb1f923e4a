"""Embedding and indexing of translation documents into OpenSearch"""

import asyncio
import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from opensearchpy.exceptions import OpenSearchException

from fijian_rag.config import get_settings
from fijian_rag.errors import ErrorCode, MalformedInputError, PipelineError, UpstreamServiceError
from fijian_rag.ingestion.embeddings import BedrockEmbedder
from fijian_rag.models import DictionaryEntry, IndexDocument, TranslationPair, build_document_id

from .client import create_client, translation_index_body

logger = logging.getLogger(__name__)

Indexable = Union[DictionaryEntry, TranslationPair]


@dataclass
class IndexItem:
    """One unit of batch work: what to index, where it came from, and its stable ref."""

    item: Indexable
    source: str
    ref: Optional[str] = None
    verified: Optional[bool] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> str:
        return build_document_id(self.source, self.ref or default_ref(self.item))


@dataclass
class BatchIndexReport:
    """Per-id outcome of a batch; failed ids can be retried exactly."""

    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def failed_ids(self) -> List[str]:
        return list(self.failed.keys())

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {"succeeded": list(self.succeeded), "failed": dict(self.failed)}


def default_ref(item: Indexable) -> str:
    """Stable per-item identifier used when the caller supplies none."""
    dedup_key = _as_pair(item).dedup_key
    return hashlib.md5(dedup_key.encode("utf-8")).hexdigest()[:16]


def _as_pair(item: Indexable) -> TranslationPair:
    if isinstance(item, DictionaryEntry):
        return item.to_translation_pair()
    if isinstance(item, TranslationPair):
        return item
    raise MalformedInputError(
        f"Cannot index {type(item).__name__}; expected DictionaryEntry or TranslationPair",
        field="item",
    )


def embedding_text(pair: TranslationPair) -> str:
    """Text sent to the embedding model for a pair."""
    return f"{pair.source_text.strip()} - {pair.target_text.strip()}"


class TranslationIndexer:
    """
    Writes translation documents into the hybrid search index.

    Every write asks for ``refresh="wait_for"`` so a search issued right after
    indexing sees the document. Document ids are deterministic, so indexing
    the same source twice overwrites instead of duplicating.
    """

    def __init__(
        self,
        client: Any = None,
        embedder: Optional[BedrockEmbedder] = None,
        index_name: Optional[str] = None,
    ):
        if client is None or index_name is None:
            settings = get_settings()
        self._client = client if client is not None else create_client(settings)
        self.embedder = embedder or BedrockEmbedder()
        self.index_name = index_name or settings.opensearch_index

    # =========================================================================
    # Index management
    # =========================================================================

    async def ensure_index(self) -> bool:
        """
        Create the index with the knn mapping if it does not exist.

        Returns:
            True if the index was created, False if it already existed
        """
        try:
            exists = await asyncio.to_thread(self._client.indices.exists, index=self.index_name)
            if exists:
                return False
            body = translation_index_body(self.embedder.dimension)
            await asyncio.to_thread(self._client.indices.create, index=self.index_name, body=body)
        except OpenSearchException as e:
            logger.error(f"Error creating index {self.index_name}: {e}")
            raise UpstreamServiceError.from_exception("opensearch", e, code=ErrorCode.INDEX_ERROR) from e

        logger.info(f"Created index {self.index_name}")
        return True

    # =========================================================================
    # Single documents
    # =========================================================================

    async def index_document(self, doc: IndexDocument) -> str:
        """
        Write (or overwrite) one document.

        Args:
            doc: Fully built document including its embedding

        Returns:
            The document id
        """
        if not doc.id:
            raise MalformedInputError("Index document has no id", field="id")
        try:
            await asyncio.to_thread(
                self._client.index,
                index=self.index_name,
                id=doc.id,
                body=doc.to_source(),
                refresh="wait_for",
            )
        except OpenSearchException as e:
            logger.error(f"Error indexing document {doc.id}: {e}")
            raise UpstreamServiceError.from_exception("opensearch", e, code=ErrorCode.INDEX_ERROR) from e
        return doc.id

    async def build_document(self, work: IndexItem) -> IndexDocument:
        """Embed one item and build its index document."""
        pair = _as_pair(work.item)
        embedding = await self.embedder.embed(embedding_text(pair))
        metadata = dict(work.metadata)
        if isinstance(work.item, DictionaryEntry):
            metadata.setdefault("headword", work.item.headword)
            metadata.setdefault("confidence", work.item.confidence)
            if work.item.part_of_speech:
                metadata.setdefault("partOfSpeech", work.item.part_of_speech)
        return IndexDocument(
            id=work.document_id,
            original_text=pair.source_text,
            translated_text=pair.target_text,
            embedding=tuple(embedding),
            verified=pair.verified if work.verified is None else work.verified,
            source=work.source,
            metadata=metadata,
        )

    async def embed_and_index(
        self,
        item: Indexable,
        source: str,
        ref: Optional[str] = None,
        verified: Optional[bool] = None,
    ) -> str:
        """
        Embed an entry or pair and write it to the index.

        Returns:
            The deterministic document id
        """
        if not source:
            raise MalformedInputError("A source identifier is required for indexing", field="source")
        doc = await self.build_document(IndexItem(item=item, source=source, ref=ref, verified=verified))
        return await self.index_document(doc)

    # =========================================================================
    # Batches
    # =========================================================================

    async def index_batch(
        self,
        items: Sequence[IndexItem],
        max_concurrency: Optional[int] = None,
    ) -> BatchIndexReport:
        """
        Embed and index many items with bounded concurrency.

        Items are grouped by source. A source's documents are written only
        once all of its embeddings have succeeded; if any embedding fails,
        every id of that source is reported failed and none are written.
        Write failures are reported per id.

        Args:
            items: Work items
            max_concurrency: Maximum concurrent model/index calls

        Returns:
            BatchIndexReport listing succeeded and failed ids
        """
        limit = max_concurrency or get_settings().embedding_concurrency
        semaphore = asyncio.Semaphore(max(1, limit))
        report = BatchIndexReport()

        groups: "OrderedDict[str, List[IndexItem]]" = OrderedDict()
        for work in items:
            groups.setdefault(work.source, []).append(work)

        async def embed_one(work: IndexItem) -> IndexDocument:
            async with semaphore:
                return await self.build_document(work)

        async def write_one(doc: IndexDocument) -> Tuple[str, Optional[str]]:
            async with semaphore:
                try:
                    await self.index_document(doc)
                    return doc.id, None
                except PipelineError as e:
                    return doc.id, e.message

        async def process_source(source: str, group: List[IndexItem]) -> None:
            results = await asyncio.gather(*(embed_one(w) for w in group), return_exceptions=True)
            for r in results:
                if isinstance(r, BaseException) and not isinstance(r, Exception):
                    raise r
            errors = [r for r in results if isinstance(r, Exception)]
            if errors:
                reason = f"embedding failed for source {source}: {errors[0]}"
                logger.warning(f"Skipping {len(group)} documents: {reason}")
                for work in group:
                    report.failed[work.document_id] = reason
                return

            for doc_id, error in await asyncio.gather(*(write_one(doc) for doc in results)):
                if error is None:
                    report.succeeded.append(doc_id)
                else:
                    report.failed[doc_id] = error

        await asyncio.gather(*(process_source(s, g) for s, g in groups.items()))

        logger.info(
            f"Indexed batch of {len(items)} items from {len(groups)} sources: "
            f"{len(report.succeeded)} succeeded, {len(report.failed)} failed"
        )
        return report
