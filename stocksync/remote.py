"""Async HTTP adapter for the StockGenius collection API."""

import logging

import httpx

from stocksync.config import StockSyncConfig

logger = logging.getLogger(__name__)

COLLECTIONS = ("categories", "items")


class RemoteError(Exception):
    """Raised when the server rejects a request or cannot be reached.

    Attributes:
        status_code: HTTP status, or None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None

    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI validation errors
        return "; ".join(str(entry.get("msg", entry)) for entry in detail)
    return f"Server returned {response.status_code}"


def _decode(response: httpx.Response):
    try:
        return response.json()
    except ValueError as e:
        raise RemoteError(
            f"Unexpected response from server: {e}", response.status_code
        ) from e


class RemoteCollections:
    """Query, insert, update and delete over the server's named collections.

    Every call is scoped to the owner encoded in the access token.
    """

    def __init__(
        self,
        server_url: str,
        api_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the adapter.

        Args:
            server_url: Base URL of the StockGenius server.
            api_token: Owner access token.
            timeout: Request timeout in seconds.
            transport: Optional transport (used to talk to an in-process app).
        """
        self.client = httpx.AsyncClient(
            base_url=server_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: StockSyncConfig) -> "RemoteCollections":
        return cls(config.server_url, config.api_token, timeout=config.request_timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "RemoteCollections":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @staticmethod
    def _path(collection: str, suffix: str | None = None) -> str:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{collection}'")
        path = f"/api/{collection}"
        return f"{path}/{suffix}" if suffix else path

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RemoteError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = _error_detail(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise RemoteError(message, response.status_code)
        return response

    async def select(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        **filters,
    ) -> list[dict]:
        """Fetch rows, optionally filtered by field and ordered.

        Args:
            collection: ``categories`` or ``items``.
            order_by: Field to order by.
            descending: Reverse the ordering.
            **filters: Field equality filters.

        Returns:
            list[dict]: Rows as returned by the server.
        """
        params = {key: value for key, value in filters.items() if value is not None}
        if order_by:
            params["order_by"] = order_by
            params["descending"] = str(descending).lower()
        response = await self._request("GET", self._path(collection), params=params)
        return _decode(response)

    async def get(self, collection: str, record_id: str) -> dict:
        """Fetch a single row by ID."""
        response = await self._request("GET", self._path(collection, record_id))
        return _decode(response)

    async def insert(self, collection: str, record: dict) -> dict:
        """Insert one row and return it as stored."""
        response = await self._request("POST", self._path(collection), json=record)
        return _decode(response)

    async def insert_many(self, collection: str, records: list[dict]) -> list[dict]:
        """Insert several rows and return those that were created."""
        response = await self._request("POST", self._path(collection, "bulk"), json=records)
        return _decode(response)

    async def update(self, collection: str, record_id: str, changes: dict) -> dict:
        """Apply a partial update to one row and return it as stored."""
        response = await self._request(
            "PATCH", self._path(collection, record_id), json=changes
        )
        return _decode(response)

    async def delete(self, collection: str, record_id: str) -> None:
        """Delete one row."""
        await self._request("DELETE", self._path(collection, record_id))

    async def delete_where(self, collection: str, **filters) -> int:
        """Delete every row matching the field filters.

        Returns:
            int: Number of rows deleted.
        """
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        response = await self._request("DELETE", self._path(collection), params=filters)
        body = _decode(response)
        if not isinstance(body, dict):
            raise RemoteError("Unexpected response from server", response.status_code)
        return body.get("deleted", 0)
