"""DynamoDB repositories for pending and verified submissions."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from fijian_rag.config import get_settings
from fijian_rag.errors import ErrorCode, MalformedInputError, UpstreamServiceError
from fijian_rag.models import DataKind, build_dedup_key

logger = logging.getLogger(__name__)


# Verified-store primary key attribute names per kind
VERIFIED_KEY_SCHEMA: Dict[DataKind, Tuple[str, str]] = {
    DataKind.TRANSLATION: ("fijian", "english"),
    DataKind.VOCAB: ("word", "meaning"),
}


def coerce_kind(kind: Any) -> DataKind:
    """Accept a DataKind or its string value."""
    try:
        return DataKind(kind)
    except ValueError:
        raise MalformedInputError(f"Unknown data kind: {kind!r}", field="kind") from None


def _dynamodb_table(table_name: str):
    settings = get_settings()
    dynamodb = boto3.resource("dynamodb", config=settings.boto_config())
    return dynamodb.Table(table_name)


class PendingSubmissionRepository:
    """
    Unverified submissions awaiting review.

    Items are keyed by ``dataType``/``dataKey`` and carry a normalized
    ``dedupKey`` that the ``GSI_UnverifiedKey`` index is built on.
    """

    def __init__(self, table: Any = None, index_name: Optional[str] = None):
        """Initialize repository with DynamoDB table."""
        if table is None or index_name is None:
            settings = get_settings()
        self._table = table if table is not None else _dynamodb_table(settings.pending_submissions_table)
        self.index_name = index_name or settings.unverified_key_index

    # =========================================================================
    # Lookups
    # =========================================================================

    async def exists_by_dedup_key(self, dedup_key: str) -> bool:
        """
        Check the secondary index for a submission with this dedup key.

        Args:
            dedup_key: Normalized composite key from ``build_dedup_key``

        Returns:
            True if at least one pending submission matches
        """
        try:
            response = await asyncio.to_thread(
                self._table.query,
                IndexName=self.index_name,
                KeyConditionExpression=Key("dedupKey").eq(dedup_key),
                Limit=1,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error querying {self.index_name} for {dedup_key}: {e}")
            raise UpstreamServiceError.from_exception("dynamodb", e, code=ErrorCode.STORE_ERROR) from e
        return len(response.get("Items", [])) > 0

    # =========================================================================
    # Writes
    # =========================================================================

    async def put_submission(
        self,
        data_type: str,
        data_key: str,
        key1: str,
        key2: str,
        fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Store a new unverified submission.

        Args:
            data_type: Submission type ("translation", "vocab", "dictionary")
            data_key: Unique key within the type
            key1: First dedup component (Fijian text or word)
            key2: Second dedup component (English text or meaning)
            fields: Additional attributes to store

        Returns:
            The stored item
        """
        now = datetime.utcnow().isoformat() + "Z"
        item = dict(fields or {})
        item.update(
            {
                "dataType": data_type,
                "dataKey": data_key,
                "dedupKey": build_dedup_key(key1, key2),
                "verified": "false",
                "createdAt": now,
            }
        )
        try:
            await asyncio.to_thread(self._table.put_item, Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error storing submission {data_type}/{data_key}: {e}")
            raise UpstreamServiceError.from_exception("dynamodb", e, code=ErrorCode.STORE_ERROR) from e

        logger.info(f"Stored pending submission {data_type}/{data_key}")
        return item

    async def mark_verified(self, data_type: str, data_key: str, verified_by: Optional[str] = None) -> None:
        """Flag a pending submission as verified."""
        now = datetime.utcnow().isoformat() + "Z"
        try:
            await asyncio.to_thread(
                self._table.update_item,
                Key={"dataType": data_type, "dataKey": data_key},
                UpdateExpression="SET verified = :v, verifiedAt = :t, verifiedBy = :by",
                ExpressionAttributeValues={":v": "true", ":t": now, ":by": verified_by or "system"},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error verifying submission {data_type}/{data_key}: {e}")
            raise UpstreamServiceError.from_exception("dynamodb", e, code=ErrorCode.STORE_ERROR) from e

        logger.info(f"Marked {data_type}/{data_key} verified")


class VerifiedStoreRepository:
    """Verified translations and vocabulary, one table per kind."""

    def __init__(self, translations_table: Any = None, vocab_table: Any = None):
        if translations_table is None or vocab_table is None:
            settings = get_settings()
        self._tables = {
            DataKind.TRANSLATION: translations_table
            if translations_table is not None
            else _dynamodb_table(settings.verified_translations_table),
            DataKind.VOCAB: vocab_table
            if vocab_table is not None
            else _dynamodb_table(settings.verified_vocab_table),
        }

    def key_for(self, kind: Any, key1: str, key2: str) -> Dict[str, str]:
        """Build the kind-specific primary key (``{fijian, english}`` or ``{word, meaning}``)."""
        first, second = VERIFIED_KEY_SCHEMA[coerce_kind(kind)]
        return {first: key1.strip(), second: key2.strip()}

    async def exists(self, kind: Any, key1: str, key2: str) -> bool:
        """
        Primary-key lookup in the verified store.

        Returns:
            True if the verified pair exists
        """
        kind = coerce_kind(kind)
        key = self.key_for(kind, key1, key2)
        try:
            response = await asyncio.to_thread(self._tables[kind].get_item, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading verified {kind.value} {key}: {e}")
            raise UpstreamServiceError.from_exception("dynamodb", e, code=ErrorCode.STORE_ERROR) from e
        return "Item" in response and response["Item"] is not None

    async def put_verified(
        self,
        kind: Any,
        key1: str,
        key2: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Store a verified pair (overwrites an existing item with the same key)."""
        kind = coerce_kind(kind)
        item = dict(extra or {})
        item.update(self.key_for(kind, key1, key2))
        item["verifiedAt"] = datetime.utcnow().isoformat() + "Z"
        try:
            await asyncio.to_thread(self._tables[kind].put_item, Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error storing verified {kind.value}: {e}")
            raise UpstreamServiceError.from_exception("dynamodb", e, code=ErrorCode.STORE_ERROR) from e
        return item
