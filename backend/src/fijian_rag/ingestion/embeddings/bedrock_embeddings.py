"""Bedrock text embeddings

Wraps ``invoke_model`` for Titan text embeddings. Retries for throttling and
5xx are left to botocore's client retry configuration.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fijian_rag.config import (
    DEFAULT_EMBEDDING_DIMENSION,
    DEFAULT_EMBEDDING_MODEL_ID,
    get_settings,
)
from fijian_rag.errors import ErrorCode, MalformedInputError, UpstreamServiceError

logger = logging.getLogger(__name__)


BEDROCK_EMBEDDING_CONFIG = {
    "model_id": DEFAULT_EMBEDDING_MODEL_ID,
    "dimension": DEFAULT_EMBEDDING_DIMENSION,
    "max_input_chars": 50000,
}


class BedrockEmbedder:
    """
    Compute fixed-dimension embeddings with a Bedrock model.

    Malformed model output (missing vector, wrong dimension) is a permanent
    failure. Client errors are classified as transient or permanent.
    """

    def __init__(
        self,
        client: Any = None,
        model_id: Optional[str] = None,
        dimension: Optional[int] = None,
    ):
        if client is None or model_id is None or dimension is None:
            settings = get_settings()
        if client is None:
            client = boto3.client("bedrock-runtime", config=settings.boto_config())
        self._client = client
        self.model_id = model_id or settings.embedding_model_id
        self.dimension = dimension or settings.embedding_dimension

    async def embed(self, text: str) -> List[float]:
        """
        Embed one piece of text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of length ``self.dimension``

        Raises:
            MalformedInputError: If text is blank
            UpstreamServiceError: If the model call fails or returns a bad vector
        """
        if not isinstance(text, str) or not text.strip():
            raise MalformedInputError("Cannot embed empty text", field="text")

        body = json.dumps({"inputText": text[: BEDROCK_EMBEDDING_CONFIG["max_input_chars"]]})
        try:
            response = await asyncio.to_thread(
                self._client.invoke_model,
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=body,
            )
            payload = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error invoking embedding model {self.model_id}: {e}")
            raise UpstreamServiceError.from_exception("bedrock", e, code=ErrorCode.MODEL_ERROR) from e
        except (KeyError, ValueError) as e:
            logger.error(f"Unreadable response from embedding model {self.model_id}: {e}")
            raise UpstreamServiceError(
                "bedrock", "Unreadable embedding response", code=ErrorCode.MODEL_ERROR
            ) from e

        return self._validate(payload.get("embedding"))

    def _validate(self, embedding: Any) -> List[float]:
        if not isinstance(embedding, list) or not embedding:
            raise UpstreamServiceError(
                "bedrock", "Embedding response has no vector", code=ErrorCode.MODEL_ERROR
            )
        if len(embedding) != self.dimension:
            raise UpstreamServiceError(
                "bedrock",
                f"Expected {self.dimension}-dimension embedding, got {len(embedding)}",
                code=ErrorCode.MODEL_ERROR,
            )
        return [float(v) for v in embedding]
