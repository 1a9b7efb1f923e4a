"""Hybrid (lexical + k-NN) retrieval over the translation index

Results from both searches are handed back unfused; ranking across the two
lists is left to the text-generation step that consumes them.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from opensearchpy.exceptions import OpenSearchException

from fijian_rag.config import get_settings
from fijian_rag.errors import ErrorCode, MalformedInputError, UpstreamServiceError
from fijian_rag.ingestion.embeddings import BedrockEmbedder
from fijian_rag.models import MatchType, ScoredDocument

from .client import create_client

logger = logging.getLogger(__name__)


# Particles and question words that rarely carry the meaning being asked about
FUNCTION_WORDS = frozenset([
    'na', 'ko', 'e', 'me', 'ni', 'ka', 'kei', 'i', 'o', 'vei', 'mai', 'yani',
    'tiko', 'tu', 'ga', 'sara', 'tale', 'beka', 'soti', 'what', 'does', 'is',
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'how', 'why', 'when', 'where', 'who', 'mean', 'means', 'called', 'do',
    'you', 'say', 'meaning', 'definition',
])

QUESTION_PATTERNS = [
    re.compile(r"what\s+(?:does|is)\s+([a-z]+)\s+mean"),
    re.compile(r"what\s+is\s+(?:the\s+)?(?:meaning\s+of\s+)?([a-z]+)"),
    re.compile(r"(?:meaning|definition)\s+of\s+([a-z]+)"),
    re.compile(r"how\s+do\s+you\s+say\s+([a-z]+)"),
    re.compile(r"translate\s+([a-z]+)"),
]

MAX_QUERY_TERMS = 5

_WORD_SPLIT = re.compile(r"[\s.,!?;:\-@]+")
_ALPHA = re.compile(r"^[a-z]+$")


def _all_words(query: str) -> List[str]:
    words = (w.strip() for w in _WORD_SPLIT.split(query))
    return [w for w in words if 2 <= len(w) <= 20 and _ALPHA.match(w)]


def extract_query_terms(query: str) -> List[str]:
    """
    Pick up to five likely headwords from a learner's question.

    A word asked about directly ("what does bula mean") comes first; other
    content words follow, and function words only fill remaining slots.
    """
    lowered = query.lower()
    for pattern in QUESTION_PATTERNS:
        match = pattern.search(lowered)
        if match:
            target = match.group(1)
            if 2 <= len(target) <= 20 and target not in FUNCTION_WORDS:
                others = [w for w in _all_words(lowered) if w != target and w not in FUNCTION_WORDS]
                return [target, *others][:MAX_QUERY_TERMS]

    words = _all_words(lowered)
    content = [w for w in words if w not in FUNCTION_WORDS]
    function = [w for w in words if w in FUNCTION_WORDS]
    return [*content, *function][:MAX_QUERY_TERMS]


def format_context(docs: Sequence[ScoredDocument]) -> str:
    """Render search hits as a context block for the text-generation prompt."""
    sections = []
    for doc in docs:
        lines = [f"Fijian: {doc.original_text or 'Unknown'}", f"English: {doc.translated_text or 'No translation available'}"]
        if not doc.verified:
            lines.append("Notes: unverified")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


@dataclass
class HybridSearchResult:
    """Both result lists, kept separate."""

    lexical: List[ScoredDocument] = field(default_factory=list)
    vector: List[ScoredDocument] = field(default_factory=list)

    def combined(self) -> List[ScoredDocument]:
        """Lexical hits first, then vector hits not already present."""
        seen = {doc.id for doc in self.lexical}
        merged = list(self.lexical)
        for doc in self.vector:
            if doc.id not in seen:
                seen.add(doc.id)
                merged.append(doc)
        return merged


class HybridRetriever:
    """Lexical match over verified documents plus k-NN over all embeddings."""

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

    async def search_split(self, query: str, k: Optional[int] = None) -> HybridSearchResult:
        """
        Run both searches and return their hits separately.

        Args:
            query: Free-text query
            k: Maximum hits per search (defaults to settings.retrieval_k)

        Raises:
            MalformedInputError: Blank query or k < 1
            UpstreamServiceError: Embedding or search failure
        """
        if not isinstance(query, str) or not query.strip():
            raise MalformedInputError("Search query must not be empty", field="query")
        if k is None:
            k = get_settings().retrieval_k
        if k < 1:
            raise MalformedInputError(f"k must be at least 1, got {k}", field="k")

        vector = await self.embedder.embed(query)
        lexical_hits, vector_hits = await asyncio.gather(
            self._search(self.lexical_query(query, k)),
            self._search(self.knn_query(vector, k)),
        )

        result = HybridSearchResult(
            lexical=[ScoredDocument.from_hit(h, MatchType.LEXICAL) for h in lexical_hits],
            vector=[ScoredDocument.from_hit(h, MatchType.VECTOR) for h in vector_hits],
        )
        logger.info(
            f"Hybrid search for {query!r}: {len(result.lexical)} lexical, {len(result.vector)} vector hits"
        )
        return result

    async def search(self, query: str, k: Optional[int] = None) -> List[ScoredDocument]:
        """Lexical hits followed by vector hits, de-duplicated by id."""
        result = await self.search_split(query, k)
        return result.combined()

    # =========================================================================
    # Query bodies
    # =========================================================================

    @staticmethod
    def lexical_query(query: str, k: int) -> Dict[str, Any]:
        terms = extract_query_terms(query)
        should: List[Dict[str, Any]] = [
            {"multi_match": {"query": query, "fields": ["originalText^2", "translatedText"]}}
        ]
        if terms:
            should.append({"terms": {"originalText": terms, "boost": 3.0}})
        return {
            "size": k,
            "query": {
                "bool": {
                    "should": should,
                    "filter": [{"term": {"verified": True}}],
                    "minimum_should_match": 1,
                }
            },
        }

    @staticmethod
    def knn_query(vector: List[float], k: int) -> Dict[str, Any]:
        return {
            "size": k,
            "query": {"knn": {"embedding": {"vector": vector, "k": k}}},
            "_source": {"excludes": ["embedding"]},
        }

    async def _search(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            response = await asyncio.to_thread(self._client.search, index=self.index_name, body=body)
        except OpenSearchException as e:
            logger.error(f"Error searching {self.index_name}: {e}")
            raise UpstreamServiceError.from_exception("opensearch", e, code=ErrorCode.INDEX_ERROR) from e
        return response.get("hits", {}).get("hits", [])
