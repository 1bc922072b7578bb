"""Tests for the object-store write target."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.stub import ANY, Stubber

from transit_ingest.errors import StorageError
from transit_ingest.services.gtfs_static.parser import parse
from transit_ingest.services.storage.object_store import ObjectStoreTarget, get_s3_client


def _s3() -> object:
    return boto3.client(
        "s3",
        aws_access_key_id="test-id",
        aws_secret_access_key="test-secret",
        region_name="us-west-2",
    )


def _clock() -> datetime:
    return datetime(2019, 10, 1, 12, 30, 0, tzinfo=timezone.utc)


class TestLocate:
    def test_bucket_prefixes_namespace_and_time(self) -> None:
        target = ObjectStoreTarget(MagicMock(), bucket="translink-s3", clock=_clock)
        assert target.locate("positions", "raw") == (
            "translink-s3",
            "positions/raw/2019-10-01/12:30:00.csv",
        )

    def test_without_bucket_uses_namespace(self) -> None:
        assert ObjectStoreTarget(MagicMock()).locate("schedule", "trips") == ("schedule", "trips")


class TestObjectStorePut:
    """Unit tests for CSV uploads."""

    @pytest.mark.asyncio
    async def test_put_sends_csv_object(self) -> None:
        client = _s3()
        target = ObjectStoreTarget(client)

        with Stubber(client) as stubber:
            stubber.add_response(
                "put_object",
                {"ETag": '"abc123"', "ResponseMetadata": {"HTTPStatusCode": 200}},
                expected_params={
                    "Bucket": "schedule",
                    "Key": "trips",
                    "Body": ANY,
                    "ContentType": "text/csv",
                    "ContentDisposition": "attachment;filename=trips.csv",
                },
            )
            assert await target.put("schedule", "trips", {"id": 1, "headsign": "UBC"}) is True
            stubber.assert_no_pending_responses()

    @pytest.mark.asyncio
    async def test_body_round_trips_rows(self) -> None:
        client = MagicMock()
        client.put_object.return_value = {"ResponseMetadata": {"HTTPStatusCode": 200}}
        target = ObjectStoreTarget(client)
        rows = [
            {"id": "1", "name": "Waterfront, Bay 1"},
            {"id": "2", "name": "Burrard"},
        ]

        await target.put("bucket", "stops/2019-10-01.csv", *rows)

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["ContentDisposition"] == "attachment;filename=2019-10-01.csv"
        assert parse(kwargs["Body"].decode()) == rows

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self) -> None:
        client = MagicMock()
        assert await ObjectStoreTarget(client).put("bucket", "key") is False
        client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_upload_raises_storage_error(self) -> None:
        client = _s3()
        target = ObjectStoreTarget(client)

        with Stubber(client) as stubber:
            stubber.add_client_error(
                "put_object",
                service_error_code="AccessDenied",
                service_message="Access Denied",
                http_status_code=403,
            )
            with pytest.raises(StorageError) as exc_info:
                await target.put("bucket", "key", {"id": 1})

        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "403: Access Denied"


class TestGetS3Client:
    def test_passes_endpoint(self) -> None:
        with patch("transit_ingest.services.storage.object_store.boto3.client") as mock_client:
            get_s3_client("id", "secret", "us-west-2", "http://minio.test:9000")
        mock_client.assert_called_once_with(
            "s3",
            aws_access_key_id="id",
            aws_secret_access_key="secret",
            region_name="us-west-2",
            endpoint_url="http://minio.test:9000",
        )
