"""
Object storage for the archive bucket.

Thin wrapper over a boto3 S3 client. Cloudflare R2 (and other S3-compatible
stores) are reached by setting ARCHIVE_ENDPOINT_URL.

Two payload formats:
- JSON documents (manifest, URL index, monthly statistics, URL cache)
- gzip-compressed NDJSON (day shards), one JSON object per line

Missing keys are not errors: get_* returns None / [] for them. Every other
storage failure is raised as StorageError so callers can decide whether to
degrade.

Environment Variables:
- ARCHIVE_BUCKET: bucket name (empty = storage unavailable)
- ARCHIVE_ENDPOINT_URL: S3 endpoint override (R2 account endpoint)
- ARCHIVE_ACCESS_KEY_ID / ARCHIVE_SECRET_ACCESS_KEY / ARCHIVE_REGION
"""

import gzip
import json
import logging
from typing import Any, Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import settings

logger = logging.getLogger(__name__)

MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class StorageError(Exception):
    """Archive bucket read/write failed."""


class ObjectStore:
    """JSON and NDJSON.gz access to one bucket."""

    def __init__(self, bucket: str, client=None):
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls) -> "ObjectStore":
        return cls(bucket=settings.ARCHIVE_BUCKET)

    @property
    def client(self):
        if self._client is None:
            kwargs = {"region_name": settings.ARCHIVE_REGION or None}
            if settings.ARCHIVE_ENDPOINT_URL:
                kwargs["endpoint_url"] = settings.ARCHIVE_ENDPOINT_URL
            if settings.ARCHIVE_ACCESS_KEY_ID:
                kwargs["aws_access_key_id"] = settings.ARCHIVE_ACCESS_KEY_ID
                kwargs["aws_secret_access_key"] = settings.ARCHIVE_SECRET_ACCESS_KEY
            self._client = boto3.client("s3", **kwargs)
        return self._client

    def is_available(self) -> bool:
        return bool(self.bucket)

    # =========================================================================
    # Raw bytes
    # =========================================================================

    def get_bytes(self, key: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in MISSING_KEY_CODES:
                return None
            raise StorageError(f"get {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"get {key} failed: {e}") from e

    def put_bytes(self, key: str, body: bytes, content_type: str, content_encoding: Optional[str] = None) -> int:
        kwargs = {"Bucket": self.bucket, "Key": key, "Body": body, "ContentType": content_type}
        if content_encoding:
            kwargs["ContentEncoding"] = content_encoding
        try:
            self.client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"put {key} failed: {e}") from e
        return len(body)

    # =========================================================================
    # JSON
    # =========================================================================

    def get_json(self, key: str) -> Optional[Any]:
        body = self.get_bytes(key)
        if body is None:
            return None
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"{key} is not valid JSON: {e}") from e

    def put_json(self, key: str, data: Any) -> int:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        return self.put_bytes(key, body, "application/json")

    # =========================================================================
    # NDJSON.gz
    # =========================================================================

    def get_ndjson_gz(self, key: str) -> list[dict]:
        body = self.get_bytes(key)
        if body is None:
            return []
        try:
            text = gzip.decompress(body).decode("utf-8")
            return [json.loads(line) for line in text.splitlines() if line.strip()]
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"{key} is not valid NDJSON.gz: {e}") from e

    def put_ndjson_gz(self, key: str, rows: Iterable[dict]) -> int:
        """Write rows as gzip NDJSON. Returns compressed size in bytes."""
        text = "\n".join(json.dumps(row, ensure_ascii=False) for row in rows)
        body = gzip.compress(text.encode("utf-8"))
        return self.put_bytes(key, body, "application/x-ndjson", content_encoding="gzip")
