"""Environment-driven settings for the curation pipeline.

Values are read once from the process environment (optionally seeded from a
local ``.env`` file) and cached for the lifetime of the process.
"""

import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from botocore.config import Config
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# OCR job polling
DEFAULT_OCR_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_OCR_MAX_ATTEMPTS = 60

# Titan text embeddings v1
DEFAULT_EMBEDDING_MODEL_ID = "amazon.titan-embed-text-v1"
DEFAULT_EMBEDDING_DIMENSION = 1536


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    """Pipeline configuration resolved from environment variables."""

    aws_region: str = "us-west-2"

    # DynamoDB tables
    pending_submissions_table: str = "translations-review"
    verified_translations_table: str = "verified-translations"
    verified_vocab_table: str = "verified-vocab"
    unverified_key_index: str = "GSI_UnverifiedKey"

    # OpenSearch
    opensearch_endpoint: str = "https://localhost:9200"
    opensearch_index: str = "translations"
    opensearch_service: str = "es"  # "aoss" for serverless collections

    # Bedrock embeddings
    embedding_model_id: str = DEFAULT_EMBEDDING_MODEL_ID
    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    embedding_concurrency: int = 4

    # Textract
    ocr_poll_interval: float = DEFAULT_OCR_POLL_INTERVAL_SECONDS
    ocr_max_attempts: int = DEFAULT_OCR_MAX_ATTEMPTS

    # Upstream retries (applied by botocore / opensearch-py at the call site)
    aws_max_attempts: int = 3
    opensearch_max_retries: int = 3

    retrieval_k: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        return cls(
            aws_region=os.environ.get(
                "AWS_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
            ),
            pending_submissions_table=os.environ.get(
                "PENDING_SUBMISSIONS_TABLE_NAME", "translations-review"
            ),
            verified_translations_table=os.environ.get(
                "VERIFIED_TRANSLATIONS_TABLE_NAME", "verified-translations"
            ),
            verified_vocab_table=os.environ.get(
                "VERIFIED_VOCAB_TABLE_NAME", "verified-vocab"
            ),
            unverified_key_index=os.environ.get(
                "UNVERIFIED_KEY_INDEX_NAME", "GSI_UnverifiedKey"
            ),
            opensearch_endpoint=os.environ.get(
                "OPENSEARCH_ENDPOINT", "https://localhost:9200"
            ),
            opensearch_index=os.environ.get("OPENSEARCH_INDEX", "translations"),
            opensearch_service=os.environ.get("OPENSEARCH_SERVICE", "es"),
            embedding_model_id=os.environ.get(
                "EMBEDDING_MODEL_ID", DEFAULT_EMBEDDING_MODEL_ID
            ),
            embedding_dimension=_env_int(
                "EMBEDDING_DIMENSION", DEFAULT_EMBEDDING_DIMENSION
            ),
            embedding_concurrency=_env_int("EMBEDDING_CONCURRENCY", 4),
            ocr_poll_interval=_env_float(
                "OCR_POLL_INTERVAL_SECONDS", DEFAULT_OCR_POLL_INTERVAL_SECONDS
            ),
            ocr_max_attempts=_env_int("OCR_MAX_ATTEMPTS", DEFAULT_OCR_MAX_ATTEMPTS),
            aws_max_attempts=_env_int("AWS_MAX_ATTEMPTS", 3),
            opensearch_max_retries=_env_int("OPENSEARCH_MAX_RETRIES", 3),
            retrieval_k=_env_int("RETRIEVAL_K", 5),
        )

    def boto_config(self) -> Config:
        """botocore client config with bounded standard-mode retries."""
        return Config(
            region_name=self.aws_region,
            retries={"max_attempts": self.aws_max_attempts, "mode": "standard"},
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings (loaded once)."""
    load_dotenv()
    settings = Settings.from_env()
    logger.info(
        f"Settings loaded: region={settings.aws_region}, "
        f"index={settings.opensearch_index}, model={settings.embedding_model_id}"
    )
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts that drive the pipeline."""
    logging.basicConfig(
        level=(level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
