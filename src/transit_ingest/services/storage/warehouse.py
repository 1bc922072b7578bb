"""Warehouse target streaming rows into BigQuery-style tables.

Rows are tagged with deterministic insert ids so a retried submission is
deduplicated downstream. Requests carry a bearer token from a token
issuer; a rejected token is refreshed and the request retried once.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from transit_ingest.errors import AuthExpiredError, ConfigurationError, NetworkError, StorageError
from transit_ingest.logging import get_logger
from transit_ingest.services.storage.base import to_row

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from transit_ingest.models import Record
    from transit_ingest.services.cache import CredentialCache

logger = get_logger(__name__)

CHUNK_SIZE = 10_000
TOKEN_TTL_SEC = 60 * 60
MAX_AUTH_ATTEMPTS = 2
DEFAULT_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DEFAULT_WAREHOUSE_URL = "https://www.googleapis.com/bigquery/v2"
DEFAULT_TIMEOUT_SEC = 30.0


@dataclass(frozen=True)
class ServiceAccount:
    """The parts of a service-account key the token issuer needs."""

    project_id: str
    client_email: str
    private_key: str
    private_key_id: str

    @classmethod
    def from_encoded(cls, encoded: str) -> ServiceAccount:
        """Decode a base64-encoded service-account JSON document.

        Raises:
            ConfigurationError: If the secret is not valid base64 JSON.
        """
        try:
            info = json.loads(base64.b64decode(encoded, validate=True))
            return cls(
                project_id=info["project_id"],
                client_email=info["client_email"],
                private_key=info["private_key"],
                private_key_id=info.get("private_key_id", ""),
            )
        except (binascii.Error, ValueError, KeyError, TypeError) as exc:
            msg = f"Invalid service account secret: {exc}"
            raise ConfigurationError(msg) from exc


class TokenIssuer:
    """Obtains and caches bearer tokens for a service account."""

    def __init__(
        self,
        issuer_url: str,
        account: ServiceAccount,
        cache: CredentialCache,
        client: Optional[httpx.AsyncClient] = None,
        scope: str = DEFAULT_SCOPE,
        ttl: int = TOKEN_TTL_SEC,
    ) -> None:
        self.issuer_url = issuer_url
        self.account = account
        self._cache = cache
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(DEFAULT_TIMEOUT_SEC))
        self._scope = scope
        self._ttl = ttl

    @property
    def cache_key(self) -> str:
        return self._cache.key_for(
            self.issuer_url, self.account.project_id, self.account.private_key_id
        )

    async def get_token(self) -> str:
        """Return a cached token, issuing a fresh one on a miss."""
        token = await self._cache.get(self.cache_key)
        if token:
            return token
        return await self.refresh_token()

    async def refresh_token(self) -> str:
        """Request a fresh token and cache it.

        Raises:
            NetworkError: If the issuer answers with a non-2xx status.
        """
        response = await self._client.post(
            self.issuer_url,
            json={
                "credentials": {
                    "client_email": self.account.client_email,
                    "private_key": self.account.private_key,
                },
                "projectId": self.account.project_id,
                "scopes": self._scope,
            },
        )
        token = response.text
        if not response.is_success:
            msg = f"Could not refresh oauth token: {token}"
            raise NetworkError(msg, status_code=response.status_code, url=self.issuer_url)

        token = token.strip()
        await self._cache.put(self.cache_key, token, self._ttl)
        logger.info("Issued bearer credential", project_id=self.account.project_id, ttl=self._ttl)
        return token

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, refreshing the token at most once.

        Raises:
            AuthExpiredError: If the request is still unauthorized after a refresh.
        """
        extra_headers = kwargs.pop("headers", {})
        response: httpx.Response | None = None
        for attempt in range(MAX_AUTH_ATTEMPTS):
            token = await (self.refresh_token() if attempt else self.get_token())
            headers = {**extra_headers, "Authorization": f"Bearer {token}"}
            response = await self._client.request(method, url, headers=headers, **kwargs)
            if response.status_code != httpx.codes.UNAUTHORIZED:
                return response

            logger.warning("Bearer credential rejected", url=url, attempt=attempt + 1)
            await self._cache.discard(self.cache_key)

        msg = f"Unauthorized after refreshing credential: {response.text if response else ''}"
        raise AuthExpiredError(msg, status_code=httpx.codes.UNAUTHORIZED, url=url)

    async def aclose(self) -> None:
        await self._client.aclose()


def insert_id(row: Mapping[str, Any]) -> str:
    """Derive a deterministic insert id for a row.

    Uses the row's own ``id`` when present, otherwise a digest of its
    canonical JSON serialization.
    """
    value = row.get("id")
    if value is not None and value != "":
        return str(value)
    canonical = json.dumps(row, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def chunked(items: Sequence[Any], size: int = CHUNK_SIZE) -> list[Sequence[Any]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


class WarehouseTarget:
    """Streams rows into ``namespace`` (dataset) and ``key`` (table).

    A key of the form ``table:suffix`` writes through a template table.
    Chunks are submitted concurrently; the write succeeds only if every
    chunk does, and chunks already accepted are not rolled back.
    """

    name = "warehouse"

    def __init__(
        self,
        issuer: TokenIssuer,
        base_url: str = DEFAULT_WAREHOUSE_URL,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self._issuer = issuer
        self._base_url = base_url.rstrip("/")
        self._chunk_size = chunk_size

    def locate(self, namespace: str, key: str) -> tuple[str, str]:
        return namespace, key

    def url_for(self, dataset: str, table: str) -> str:
        project = self._issuer.account.project_id
        return f"{self._base_url}/projects/{project}/datasets/{dataset}/tables/{table}/insertAll"

    async def put(self, namespace: str, key: str, *records: Record | Mapping[str, Any]) -> bool:
        """Insert ``records``, split into chunks of at most ``chunk_size`` rows.

        Raises:
            StorageError: If any chunk is rejected.
            AuthExpiredError: If a chunk stays unauthorized after a refresh.
        """
        if not records:
            return False

        rows = [{"insertId": insert_id(row), "json": row} for row in map(to_row, records)]
        chunks = chunked(rows, self._chunk_size)

        outcomes = await asyncio.gather(
            *(self._insert(namespace, key, chunk) for chunk in chunks),
            return_exceptions=True,
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            logger.error(
                "Warehouse insert failed",
                dataset=namespace,
                key=key,
                chunks=len(chunks),
                failed_chunks=len(failures),
            )
            raise failures[0]

        logger.info("Warehouse insert complete", dataset=namespace, key=key, rows=len(rows), chunks=len(chunks))
        return all(outcomes)

    async def _insert(self, dataset: str, key: str, rows: Sequence[dict[str, Any]]) -> bool:
        table, _, template_suffix = key.partition(":")
        body: dict[str, Any] = {
            "kind": "bigquery#tableDataInsertAllRequest",
            "skipInvalidRows": True,
            "ignoreUnknownValues": True,
            "rows": list(rows),
        }
        if template_suffix:
            body["templateSuffix"] = template_suffix

        response = await self._issuer.request("POST", self.url_for(dataset, table), json=body)
        if not response.is_success:
            raise StorageError(response.status_code, response.text)

        insert_errors = _insert_errors(response)
        if insert_errors:
            logger.warning(
                "Warehouse skipped invalid rows",
                dataset=dataset,
                table=table,
                invalid_rows=len(insert_errors),
            )
        return True


def _insert_errors(response: httpx.Response) -> list[Any]:
    try:
        payload = response.json()
    except ValueError:
        return []
    return payload.get("insertErrors", []) if isinstance(payload, dict) else []
