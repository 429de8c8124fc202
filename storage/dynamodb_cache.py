"""DynamoDB-backed shared cache tier."""
import json
import logging
import time
import zlib
from typing import List, Optional

import boto3
from boto3.dynamodb.types import Binary
from botocore.exceptions import BotoCoreError, ClientError

from exceptions import CacheBackendUnavailable
from processor.models import CachePayload
from storage.cache import CacheStore

logger = logging.getLogger(__name__)

# DynamoDB rejects items over 400 KB; leave room for the other attributes
MAX_CHUNK_BYTES = 350 * 1024


def _as_bytes(value) -> bytes:
    if isinstance(value, Binary):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"expected binary payload, got {type(value).__name__}")


class DynamoDBCacheStore(CacheStore):
    """Shared cache stored in a DynamoDB table keyed by cache_key.

    The payload is zlib-compressed JSON in a Binary attribute. When the
    compressed payload exceeds one item, the remainder is written to chunk
    items keyed by cache key, generation and index; the head item records
    the chunk count and is written last, so readers never see a partial
    generation.

    Items carry an expires_at epoch attribute, configured as the table's
    TTL attribute. DynamoDB removes expired items lazily, so expiry is also
    checked on read.
    """

    def __init__(self, table_name: str, clock=time.time, max_chunk_bytes: int = MAX_CHUNK_BYTES):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            clock: Callable returning the current unix time
            max_chunk_bytes: Largest compressed slice stored in one item
        """
        self.table_name = table_name
        self.clock = clock
        self.max_chunk_bytes = max_chunk_bytes
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBCacheStore for table: {table_name}")

    @staticmethod
    def chunk_key(key: str, generation: str, index: int) -> str:
        return f"{key}#{generation}#{index}"

    def get(self, key: str) -> Optional[CachePayload]:
        """
        Read a payload from the table.

        Args:
            key: Cache key

        Returns:
            CachePayload, or None if missing, expired or unreadable

        Raises:
            CacheBackendUnavailable: If DynamoDB cannot be reached
        """
        item = self._get_item(key)
        if not item:
            return None

        if int(item.get('expires_at', 0)) <= self.clock():
            logger.info(f"Shared cache entry {key} has expired")
            return None

        parts = [item.get('payload')]
        chunk_count = int(item.get('chunk_count', 1))
        for index in range(1, chunk_count):
            chunk = self._get_item(self.chunk_key(key, item.get('updated_at', ''), index))
            if not chunk:
                logger.warning(f"Shared cache entry {key} is missing chunk {index} of {chunk_count}")
                return None
            parts.append(chunk.get('payload'))

        return self._decode(parts)

    def set(self, key: str, payload: CachePayload, ttl_seconds: float) -> None:
        """
        Write a payload to the table.

        Args:
            key: Cache key
            payload: Payload to store
            ttl_seconds: Seconds until the entry expires

        Raises:
            CacheBackendUnavailable: If DynamoDB cannot be reached or
                rejects the write
        """
        blob = zlib.compress(json.dumps(payload.to_dict()).encode('utf-8'))
        chunks = self._split(blob)
        expires_at = int(self.clock() + ttl_seconds)

        try:
            for index, chunk in enumerate(chunks[1:], start=1):
                self.table.put_item(Item={
                    'cache_key': self.chunk_key(key, payload.updated_at, index),
                    'payload': chunk,
                    'expires_at': expires_at
                })
            self.table.put_item(Item={
                'cache_key': key,
                'updated_at': payload.updated_at,
                'event_count': payload.count,
                'chunk_count': len(chunks),
                'payload': chunks[0],
                'expires_at': expires_at
            })
        except (ClientError, BotoCoreError) as e:
            raise CacheBackendUnavailable('set', e)

        logger.info(
            f"Wrote {payload.count} events to shared cache under {key}",
            extra={'compressed_bytes': len(blob), 'chunk_count': len(chunks)}
        )

    def _get_item(self, key: str) -> Optional[dict]:
        try:
            response = self.table.get_item(Key={'cache_key': key})
        except (ClientError, BotoCoreError) as e:
            raise CacheBackendUnavailable('get', e)
        return response.get('Item')

    def _split(self, blob: bytes) -> List[bytes]:
        return [
            blob[start:start + self.max_chunk_bytes]
            for start in range(0, len(blob), self.max_chunk_bytes)
        ]

    def _decode(self, parts: list) -> Optional[CachePayload]:
        """
        Reassemble stored chunks into a CachePayload.

        Returns:
            CachePayload or None if the stored payload is corrupt
        """
        try:
            blob = b''.join(_as_bytes(part) for part in parts)
            return CachePayload.from_dict(json.loads(zlib.decompress(blob).decode('utf-8')))
        except (KeyError, TypeError, ValueError, zlib.error) as e:
            logger.warning(f"Failed to decode shared cache item: {type(e).__name__}: {e}")
            return None
