"""Write targets and the fan-out sink."""

from transit_ingest.services.storage.base import StorageTarget
from transit_ingest.services.storage.object_store import ObjectStoreTarget, get_s3_client
from transit_ingest.services.storage.sink import SinkReport, StorageSink
from transit_ingest.services.storage.warehouse import (
    ServiceAccount,
    TokenIssuer,
    WarehouseTarget,
    insert_id,
)

__all__ = [
    "ObjectStoreTarget",
    "ServiceAccount",
    "SinkReport",
    "StorageSink",
    "StorageTarget",
    "TokenIssuer",
    "WarehouseTarget",
    "get_s3_client",
    "insert_id",
]
