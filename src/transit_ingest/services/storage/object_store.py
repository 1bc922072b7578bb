"""Object-store target writing each batch as one CSV object."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

import boto3
from botocore.exceptions import ClientError

from transit_ingest.errors import StorageError
from transit_ingest.logging import get_logger
from transit_ingest.services.gtfs_static.parser import unparse
from transit_ingest.services.storage.base import to_row

if TYPE_CHECKING:
    from collections.abc import Mapping

    from transit_ingest.config import Settings
    from transit_ingest.models import Record

logger = get_logger(__name__)


def get_s3_client(
    aws_id: str,
    aws_secret: str,
    region: str,
    endpoint_url: Optional[str] = None,
) -> Any:
    """Thin function needed for stubbing tests"""
    return boto3.client(
        "s3",
        aws_access_key_id=aws_id,
        aws_secret_access_key=aws_secret,
        region_name=region,
        endpoint_url=endpoint_url,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObjectStoreTarget:
    """Serializes a batch to CSV and PUTs it as a single object.

    ``namespace`` is the bucket and ``key`` the object path.
    """

    name = "object_store"

    def __init__(
        self,
        client: Any,
        bucket: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> ObjectStoreTarget:
        client = get_s3_client(
            settings.aws_id,
            settings.aws_secret,
            settings.aws_region,
            settings.object_store_endpoint,
        )
        return cls(client, bucket=settings.object_store_bucket)

    def locate(self, namespace: str, key: str) -> tuple[str, str]:
        """Place each batch under ``namespace/key/`` named by the UTC time of the write."""
        if not self._bucket:
            return namespace, key
        stamp = self._clock().strftime("%Y-%m-%d/%H:%M:%S")
        return self._bucket, f"{namespace}/{key}/{stamp}.csv"

    async def put(self, namespace: str, key: str, *records: Record | Mapping[str, Any]) -> bool:
        """Upload ``records`` as ``namespace/key``.

        Returns False without writing when the batch is empty.

        Raises:
            StorageError: If the store rejects the upload.
        """
        if not records:
            return False

        rows = [to_row(record) for record in records]
        body = unparse(rows, columns=list(rows[0]))
        filename = key.rsplit("/", 1)[-1]
        if not filename.endswith(".csv"):
            filename = f"{filename}.csv"

        try:
            response = await asyncio.to_thread(
                self._client.put_object,
                Bucket=namespace,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType="text/csv",
                ContentDisposition=f"attachment;filename={filename}",
            )
        except ClientError as exc:
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            message = exc.response.get("Error", {}).get("Message") or str(exc)
            logger.error("Object upload failed", bucket=namespace, key=key, status_code=status)
            raise StorageError(status, message) from exc

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        logger.info(
            "Object uploaded",
            bucket=namespace,
            key=key,
            rows=len(rows),
            size_bytes=len(body),
            status_code=status,
        )
        return 200 <= status < 300
