"""Hybrid search index: client factory, indexing and retrieval"""

from .client import create_client, translation_index_body
from .indexer import BatchIndexReport, IndexItem, TranslationIndexer, default_ref, embedding_text
from .retriever import (
    HybridRetriever,
    HybridSearchResult,
    extract_query_terms,
    format_context,
)

__all__ = [
    'BatchIndexReport',
    'HybridRetriever',
    'HybridSearchResult',
    'IndexItem',
    'TranslationIndexer',
    'create_client',
    'default_ref',
    'embedding_text',
    'extract_query_terms',
    'format_context',
    'translation_index_body',
]
