"""Embedding generation for dictionary entries and queries

Generates vector embeddings using AWS Bedrock models.
"""

from .bedrock_embeddings import (
    BEDROCK_EMBEDDING_CONFIG,
    BedrockEmbedder
)

__all__ = [
    'BEDROCK_EMBEDDING_CONFIG',
    'BedrockEmbedder'
]
