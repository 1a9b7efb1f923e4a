"""OpenSearch client factory and translation index mapping."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection

from fijian_rag.config import Settings, get_settings

logger = logging.getLogger(__name__)


def translation_index_body(dimension: int) -> Dict[str, Any]:
    """Index settings and mappings for translation documents (text + knn vector)."""
    return {
        "settings": {"index.knn": True},
        "mappings": {
            "properties": {
                "originalText": {"type": "text", "analyzer": "standard"},
                "translatedText": {"type": "text", "analyzer": "standard"},
                "verified": {"type": "boolean"},
                "source": {"type": "keyword"},
                "embedding": {
                    "type": "knn_vector",
                    "dimension": dimension,
                    "method": {
                        "name": "hnsw",
                        "space_type": "cosinesimil",
                        "engine": "nmslib",
                    },
                },
            }
        },
    }


def create_client(settings: Optional[Settings] = None) -> OpenSearch:
    """
    Create an OpenSearch client signed with the ambient AWS credentials.

    Args:
        settings: Pipeline settings (defaults to ``get_settings()``)

    Returns:
        Configured OpenSearch client with bounded retries
    """
    settings = settings or get_settings()
    endpoint = urlparse(settings.opensearch_endpoint)
    host = endpoint.hostname or settings.opensearch_endpoint
    port = endpoint.port or (443 if endpoint.scheme != "http" else 80)

    credentials = boto3.Session().get_credentials()
    auth = AWSV4SignerAuth(credentials, settings.aws_region, settings.opensearch_service)

    logger.info(f"Connecting to OpenSearch at {host}:{port} ({settings.opensearch_service})")
    return OpenSearch(
        hosts=[{"host": host, "port": port}],
        http_auth=auth,
        use_ssl=endpoint.scheme != "http",
        verify_certs=True,
        connection_class=RequestsHttpConnection,
        timeout=30,
        max_retries=settings.opensearch_max_retries,
        retry_on_timeout=True,
    )
