"""Pytest configuration for test suite."""

import io
import json
import math
import re
import sys
from pathlib import Path

import pytest

# Add backend/src to Python path for imports
# This file is in backend/tests/, so we need to go up one level to backend/
BACKEND_DIR = Path(__file__).parent.parent
SRC_DIR = BACKEND_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from botocore.exceptions import ClientError  # noqa: E402
from opensearchpy.exceptions import TransportError  # noqa: E402

from fijian_rag.config import get_settings  # noqa: E402

TEST_DIMENSION = 8


def client_error(code: str = "ThrottlingException", operation: str = "Query", status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised by fake"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB Table resource."""

    def __init__(self, items=None, error=None):
        self.items = list(items or [])
        self.error = error
        self.calls = []

    def _record(self, name, kwargs):
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error

    def query(self, **kwargs):
        self._record("query", kwargs)
        expression = kwargs["KeyConditionExpression"].get_expression()
        key, value = expression["values"]
        matches = [item for item in self.items if item.get(key.name) == value]
        limit = kwargs.get("Limit")
        return {"Items": matches[:limit] if limit else matches}

    def get_item(self, Key):
        self._record("get_item", {"Key": Key})
        for item in self.items:
            if all(item.get(k) == v for k, v in Key.items()):
                return {"Item": dict(item)}
        return {}

    def put_item(self, Item):
        self._record("put_item", {"Item": Item})
        self.items.append(dict(Item))
        return {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues):
        self._record("update_item", {"Key": Key, "UpdateExpression": UpdateExpression})
        assignments = UpdateExpression.replace("SET", "", 1).split(",")
        for item in self.items:
            if all(item.get(k) == v for k, v in Key.items()):
                for assignment in assignments:
                    name, placeholder = [part.strip() for part in assignment.split("=")]
                    item[name] = ExpressionAttributeValues[placeholder]
        return {}


def fake_vector(text: str, dimension: int = TEST_DIMENSION):
    """Deterministic bag-of-letters vector."""
    vector = [0.0] * dimension
    for ch in text.lower():
        if ch.isalpha():
            vector[ord(ch) % dimension] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeBedrock:
    """bedrock-runtime client returning bag-of-letters embeddings."""

    def __init__(self, dimension: int = TEST_DIMENSION, fail_on=(), payload=None):
        self.dimension = dimension
        self.fail_on = tuple(fail_on)
        self.payload = payload
        self.requests = []

    def invoke_model(self, modelId, contentType, accept, body):
        request = json.loads(body)
        self.requests.append({"modelId": modelId, "body": request})
        text = request["inputText"]
        if any(marker in text for marker in self.fail_on):
            raise client_error("ThrottlingException", "InvokeModel")
        payload = self.payload if self.payload is not None else {
            "embedding": fake_vector(text, self.dimension),
            "inputTextTokenCount": len(text.split()),
        }
        return {"body": io.BytesIO(json.dumps(payload).encode("utf-8"))}


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class _FakeIndices:
    def __init__(self, store):
        self._store = store

    def exists(self, index):
        return index in self._store.mappings

    def create(self, index, body):
        self._store.mappings[index] = body
        self._store.docs.setdefault(index, {})
        return {"acknowledged": True}


class FakeOpenSearch:
    """Enough of opensearch-py's client for indexing and hybrid search."""

    def __init__(self, fail_ids=()):
        self.docs = {}
        self.mappings = {}
        self.fail_ids = set(fail_ids)
        self.index_calls = []
        self.search_bodies = []
        self.indices = _FakeIndices(self)

    def index(self, index, id, body, refresh=None):
        self.index_calls.append({"index": index, "id": id, "refresh": refresh})
        if id in self.fail_ids:
            raise TransportError(500, "index_failed", {"error": "fake write failure"})
        self.docs.setdefault(index, {})[id] = dict(body)
        return {"_id": id, "result": "created"}

    def search(self, index, body):
        self.search_bodies.append(body)
        docs = self.docs.get(index, {})
        query = body["query"]
        size = body.get("size", 10)

        if "knn" in query:
            knn = query["knn"]["embedding"]
            scored = [
                (_cosine(knn["vector"], doc["embedding"]), doc_id, doc)
                for doc_id, doc in docs.items()
                if doc.get("embedding")
            ]
            scored.sort(key=lambda s: s[0], reverse=True)
            hits = scored[: knn["k"]]
        else:
            bool_query = query["bool"]
            text = next(c["multi_match"]["query"] for c in bool_query["should"] if "multi_match" in c)
            tokens = set(re.findall(r"[a-z]+", text.lower()))
            verified_only = any(f.get("term", {}).get("verified") is True for f in bool_query.get("filter", []))
            hits = []
            for doc_id, doc in docs.items():
                if verified_only and not doc.get("verified"):
                    continue
                doc_tokens = set(re.findall(r"[a-z]+", f"{doc['originalText']} {doc['translatedText']}".lower()))
                overlap = len(tokens & doc_tokens)
                if overlap:
                    hits.append((float(overlap), doc_id, doc))
            hits.sort(key=lambda s: s[0], reverse=True)

        return {
            "hits": {
                "hits": [
                    {"_id": doc_id, "_score": score, "_source": doc}
                    for score, doc_id, doc in hits[:size]
                ]
            }
        }


class FakeTextract:
    """Textract client replaying scripted get_document_text_detection responses."""

    def __init__(self, responses, job_id="job-1", start_error=None):
        self.responses = list(responses)
        self.job_id = job_id
        self.start_error = start_error
        self.get_calls = []

    def start_document_text_detection(self, DocumentLocation):
        if self.start_error is not None:
            raise self.start_error
        self.location = DocumentLocation
        return {"JobId": self.job_id}

    def get_document_text_detection(self, JobId, NextToken=None):
        self.get_calls.append({"JobId": JobId, "NextToken": NextToken})
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def bedrock():
    return FakeBedrock()


@pytest.fixture
def opensearch():
    return FakeOpenSearch()


@pytest.fixture
def embedder(bedrock):
    from fijian_rag.ingestion.embeddings import BedrockEmbedder

    return BedrockEmbedder(client=bedrock, model_id="amazon.titan-embed-text-v1", dimension=TEST_DIMENSION)
