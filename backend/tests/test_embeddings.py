"""Tests for BedrockEmbedder"""

import asyncio

import pytest

from conftest import TEST_DIMENSION, FakeBedrock, fake_vector
from fijian_rag.errors import ErrorCode, MalformedInputError, UpstreamServiceError
from fijian_rag.ingestion.embeddings import BedrockEmbedder


def test_embed_returns_vector_of_configured_dimension(embedder, bedrock):
    vector = asyncio.run(embedder.embed("bula vinaka"))

    assert len(vector) == TEST_DIMENSION
    assert vector == fake_vector("bula vinaka")
    assert bedrock.requests[0]["modelId"] == "amazon.titan-embed-text-v1"
    assert bedrock.requests[0]["body"] == {"inputText": "bula vinaka"}


@pytest.mark.parametrize("text", ["", "   ", None])
def test_blank_text_is_rejected_before_calling_model(text, embedder, bedrock):
    with pytest.raises(MalformedInputError):
        asyncio.run(embedder.embed(text))
    assert bedrock.requests == []


def test_wrong_dimension_is_a_permanent_failure():
    embedder = BedrockEmbedder(client=FakeBedrock(dimension=4), model_id="m", dimension=TEST_DIMENSION)

    with pytest.raises(UpstreamServiceError) as exc_info:
        asyncio.run(embedder.embed("bula"))

    assert exc_info.value.transient is False
    assert exc_info.value.code == ErrorCode.MODEL_ERROR


def test_missing_vector_is_a_permanent_failure():
    client = FakeBedrock(payload={"message": "no embedding here"})
    embedder = BedrockEmbedder(client=client, model_id="m", dimension=TEST_DIMENSION)

    with pytest.raises(UpstreamServiceError) as exc_info:
        asyncio.run(embedder.embed("bula"))

    assert exc_info.value.transient is False


def test_throttling_is_transient():
    embedder = BedrockEmbedder(client=FakeBedrock(fail_on=["bula"]), model_id="m", dimension=TEST_DIMENSION)

    with pytest.raises(UpstreamServiceError) as exc_info:
        asyncio.run(embedder.embed("bula"))

    assert exc_info.value.transient is True
    assert exc_info.value.service == "bedrock"
    assert exc_info.value.status_code == 503


def test_defaults_come_from_settings(monkeypatch):
    monkeypatch.setenv("EMBEDDING_MODEL_ID", "amazon.titan-embed-text-v2:0")
    monkeypatch.setenv("EMBEDDING_DIMENSION", "1024")

    embedder = BedrockEmbedder(client=FakeBedrock())

    assert embedder.model_id == "amazon.titan-embed-text-v2:0"
    assert embedder.dimension == 1024
