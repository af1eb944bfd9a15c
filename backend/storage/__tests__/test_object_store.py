"""
Tests for the bucket wrapper.

The boto3 client is a MagicMock; nothing reaches S3.

Run: python3 -m pytest storage/__tests__/test_object_store.py -v
"""

import gzip
import io
import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from storage.object_store import ObjectStore, StorageError


def make_client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetObject")


def make_store(client: MagicMock, bucket: str = "archive") -> ObjectStore:
    return ObjectStore(bucket=bucket, client=client)


def body(data: bytes) -> dict:
    return {"Body": io.BytesIO(data)}


class TestJson:
    """Tests for JSON documents."""

    def test_get_json(self):
        client = MagicMock()
        client.get_object.return_value = body(b'{"currentMonth": "2025-03"}')

        assert make_store(client).get_json("manifest.json") == {"currentMonth": "2025-03"}
        client.get_object.assert_called_once_with(Bucket="archive", Key="manifest.json")

    def test_missing_key_is_none(self):
        client = MagicMock()
        client.get_object.side_effect = make_client_error("NoSuchKey")

        assert make_store(client).get_json("manifest.json") is None

    def test_other_client_error_raises(self):
        client = MagicMock()
        client.get_object.side_effect = make_client_error("AccessDenied")

        with pytest.raises(StorageError):
            make_store(client).get_json("manifest.json")

    def test_connection_error_raises(self):
        client = MagicMock()
        client.get_object.side_effect = EndpointConnectionError(endpoint_url="https://r2.example.com")

        with pytest.raises(StorageError):
            make_store(client).get_json("manifest.json")

    def test_invalid_json_raises(self):
        client = MagicMock()
        client.get_object.return_value = body(b"{not json")

        with pytest.raises(StorageError):
            make_store(client).get_json("manifest.json")

    def test_put_json(self):
        client = MagicMock()
        size = make_store(client).put_json("stats/2025-03.json", {"totalJobs": 1})

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Key"] == "stats/2025-03.json"
        assert kwargs["ContentType"] == "application/json"
        assert json.loads(kwargs["Body"]) == {"totalJobs": 1}
        assert size == len(kwargs["Body"])


class TestNdjsonGz:
    """Tests for compressed day shards."""

    def test_put_writes_gzip_lines(self):
        client = MagicMock()
        make_store(client).put_ndjson_gz("metadata/2025/03/day-14.ndjson.gz", [{"id": "1"}, {"id": "2"}])

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["ContentEncoding"] == "gzip"
        lines = gzip.decompress(kwargs["Body"]).decode("utf-8").splitlines()
        assert [json.loads(line) for line in lines] == [{"id": "1"}, {"id": "2"}]

    def test_get_reads_lines(self):
        client = MagicMock()
        client.get_object.return_value = body(gzip.compress(b'{"id": "1"}\n\n{"id": "2"}'))

        assert make_store(client).get_ndjson_gz("k") == [{"id": "1"}, {"id": "2"}]

    def test_missing_shard_is_empty(self):
        client = MagicMock()
        client.get_object.side_effect = make_client_error("404")

        assert make_store(client).get_ndjson_gz("k") == []

    def test_corrupt_shard_raises(self):
        client = MagicMock()
        client.get_object.return_value = body(b"not gzip")

        with pytest.raises(StorageError):
            make_store(client).get_ndjson_gz("k")


class TestAvailability:
    def test_empty_bucket_is_unavailable(self):
        assert not ObjectStore(bucket="").is_available()
        assert ObjectStore(bucket="archive").is_available()
