"""Tests for HybridRetriever and query helpers"""

import asyncio

import pytest

from conftest import fake_vector
from fijian_rag.errors import MalformedInputError
from fijian_rag.models import IndexDocument, MatchType, ScoredDocument
from fijian_rag.search import HybridRetriever, extract_query_terms, format_context

INDEX = "translations-test"


def seed(opensearch, doc_id, original, translated, verified):
    document = IndexDocument(
        id=doc_id,
        original_text=original,
        translated_text=translated,
        embedding=tuple(fake_vector(f"{original} - {translated}")),
        verified=verified,
        source="gatty.pdf",
    )
    opensearch.docs.setdefault(INDEX, {})[doc_id] = document.to_source()


@pytest.fixture
def retriever(opensearch, embedder):
    return HybridRetriever(client=opensearch, embedder=embedder, index_name=INDEX)


def test_vector_hits_returned_when_nothing_matches_lexically(opensearch, retriever):
    seed(opensearch, "vale", "vale", "house", verified=False)

    results = asyncio.run(retriever.search("where do people sleep", k=3))

    assert [r.id for r in results] == ["vale"]
    assert results[0].match_type == MatchType.VECTOR


def test_lexical_search_only_returns_verified_documents(opensearch, retriever):
    seed(opensearch, "bula-verified", "bula", "hello", verified=True)
    seed(opensearch, "bula-pending", "bula", "hi", verified=False)

    result = asyncio.run(retriever.search_split("bula", k=5))

    assert [d.id for d in result.lexical] == ["bula-verified"]
    assert {d.id for d in result.vector} == {"bula-verified", "bula-pending"}


def test_search_puts_lexical_first_and_drops_repeated_ids(opensearch, retriever):
    seed(opensearch, "bula", "bula", "hello", verified=True)
    seed(opensearch, "vale", "vale", "house", verified=True)

    results = asyncio.run(retriever.search("bula", k=5))

    assert results[0].id == "bula"
    assert results[0].match_type == MatchType.LEXICAL
    assert [r.id for r in results].count("bula") == 1
    assert {r.id for r in results} == {"bula", "vale"}


def test_lexical_query_filters_on_verified(opensearch, retriever):
    asyncio.run(retriever.search("what does bula mean", k=2))

    knn_body = next(b for b in opensearch.search_bodies if "knn" in b["query"])
    lexical_body = next(b for b in opensearch.search_bodies if "bool" in b["query"])
    assert lexical_body["query"]["bool"]["filter"] == [{"term": {"verified": True}}]
    assert lexical_body["size"] == 2
    assert knn_body["query"]["knn"]["embedding"]["k"] == 2


def test_empty_index_returns_empty_list(retriever):
    assert asyncio.run(retriever.search("bula", k=3)) == []


@pytest.mark.parametrize("query", ["", "   ", None])
def test_blank_query_is_rejected(query, retriever):
    with pytest.raises(MalformedInputError):
        asyncio.run(retriever.search(query, k=3))


def test_k_must_be_positive(retriever):
    with pytest.raises(MalformedInputError):
        asyncio.run(retriever.search("bula", k=0))


def test_k_defaults_to_settings(monkeypatch, opensearch, retriever):
    monkeypatch.setenv("RETRIEVAL_K", "7")

    asyncio.run(retriever.search("bula"))

    assert [b["size"] for b in opensearch.search_bodies] == [7, 7]


def test_question_word_is_extracted_first():
    assert extract_query_terms("What does bula mean?") == ["bula"]
    assert extract_query_terms("how do you say house in Fijian")[0] == "house"


def test_content_words_come_before_function_words():
    assert extract_query_terms("na vale levu") == ["vale", "levu", "na"]


def test_query_terms_are_capped_at_five():
    assert len(extract_query_terms("kana vale bula ika dalo koko lako")) == 5


def test_format_context_renders_each_hit():
    docs = [
        ScoredDocument("1", 2.0, "bula", "hello", True, "gatty.pdf", MatchType.LEXICAL),
        ScoredDocument("2", 0.9, "vale", "house", False, "gatty.pdf", MatchType.VECTOR),
    ]

    context = format_context(docs)

    assert context == (
        "Fijian: bula\nEnglish: hello\n\n"
        "Fijian: vale\nEnglish: house\nNotes: unverified"
    )


def test_format_context_empty():
    assert format_context([]) == ""
