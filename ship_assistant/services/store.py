"""
Store client for the Ship Network Assistant.

This module provides a small async client for the PostgREST-style HTTP API
that fronts the inventory tables:
1. Row fetches with column projection, filters, ordering and range windows
2. Head-only exact count queries
3. Translation of transport and HTTP failures into StoreError
"""
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

import httpx

from ship_assistant.config import DEFAULT_MAX_PAGES, DEFAULT_TABLE_PREFIX, STORE_ROW_CAP, Settings
from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import SourceTable

logger = logging.getLogger(__name__)

CONTENT_RANGE_PATTERN = re.compile(r'^(?:\d+-\d+|\*)/(\d+)$')


class Filter(NamedTuple):
    """One PostgREST horizontal filter, e.g. ``user=ilike.*crew*``."""
    column: str
    operator: str
    value: str

    def as_param(self) -> Tuple[str, str]:
        return self.column, f"{self.operator}.{self.value}"


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", str(value))


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", str(value))


def ilike(column: str, pattern: str) -> Filter:
    """Case-insensitive match; ``*`` is the wildcard."""
    return Filter(column, "ilike", pattern)


def is_null(column: str) -> Filter:
    return Filter(column, "is", "null")


def parse_content_range(header: Optional[str]) -> int:
    """
    Extract the total row count from a Content-Range header.

    Args:
        header: Header value such as ``0-24/25`` or ``*/0``

    Returns:
        Total number of rows

    Raises:
        StoreError: If the header is missing or has no exact total
    """
    if not header:
        raise StoreError("Count response is missing the Content-Range header")
    match = CONTENT_RANGE_PATTERN.match(header.strip())
    if not match:
        raise StoreError(f"Unparseable Content-Range header: {header!r}")
    return int(match.group(1))


class TableQuery:
    """Builder for a single query against one table."""

    def __init__(self, client: "StoreClient", table: str):
        self._client = client
        self.table = table
        self._columns = "*"
        self._filters: List[Filter] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*") -> "TableQuery":
        self._columns = columns or "*"
        return self

    def where(self, *filters: Filter) -> "TableQuery":
        self._filters.extend(filters)
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self.where(eq(column, value))

    def neq(self, column: str, value: Any) -> "TableQuery":
        return self.where(neq(column, value))

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        return self.where(ilike(column, pattern))

    def is_null(self, column: str) -> "TableQuery":
        return self.where(is_null(column))

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self._order = f"{column}.{'desc' if desc else 'asc'}"
        return self

    def limit(self, count: int) -> "TableQuery":
        self._limit = count
        return self

    def params(self) -> List[Tuple[str, str]]:
        """Query-string parameters for this query, in a stable order."""
        params = [("select", self._columns)]
        params.extend(f.as_param() for f in self._filters)
        if self._order:
            params.append(("order", self._order))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params

    async def fetch(self) -> List[Dict[str, Any]]:
        response = await self._client.request("GET", self.table, self.params())
        return _rows(response, self.table)

    async def fetch_range(self, start: int, end: int) -> List[Dict[str, Any]]:
        """Fetch rows ``start`` through ``end`` inclusive."""
        headers = {"Range-Unit": "items", "Range": f"{start}-{end}"}
        response = await self._client.request(
            "GET", self.table, self.params(), headers=headers, allowed_statuses=(416,)
        )
        if response.status_code == 416:
            # Offset past the end of the table
            return []
        return _rows(response, self.table)

    async def count(self) -> int:
        """Exact number of rows matching the filters, without transferring them."""
        headers = {"Prefer": "count=exact"}
        params = [p for p in self.params() if p[0] not in ("order", "limit")]
        response = await self._client.request("HEAD", self.table, params, headers=headers)
        try:
            return parse_content_range(response.headers.get("content-range"))
        except StoreError as e:
            raise StoreError(str(e), table=self.table, status_code=response.status_code)


def _rows(response: httpx.Response, table: str) -> List[Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError:
        raise StoreError(f"Invalid JSON from store for {table}", table=table, status_code=response.status_code)
    if not isinstance(payload, list):
        raise StoreError(f"Expected a list of rows from {table}, got {type(payload).__name__}", table=table)
    return payload


class StoreClient:
    """
    Async client for the inventory store.

    One instance is created per application and passed into every engine call.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        page_size: int = STORE_ROW_CAP,
        max_pages: int = DEFAULT_MAX_PAGES,
    ):
        self.table_prefix = table_prefix
        self.page_size = page_size
        self.max_pages = max_pages
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1/",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "StoreClient":
        return cls(
            settings.store_url,
            settings.store_key,
            table_prefix=settings.table_prefix,
            timeout=settings.request_timeout,
            transport=transport,
            page_size=settings.page_size,
            max_pages=settings.max_pages,
        )

    def physical_name(self, table: Union[SourceTable, str]) -> str:
        """Map a source table to its physical name; plain strings pass through."""
        if isinstance(table, SourceTable):
            return f"{self.table_prefix}{table.value}"
        return table

    def table(self, table: Union[SourceTable, str]) -> TableQuery:
        return TableQuery(self, self.physical_name(table))

    async def request(
        self,
        method: str,
        table: str,
        params: List[Tuple[str, str]],
        headers: Optional[Dict[str, str]] = None,
        allowed_statuses: Tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send one request, raising StoreError on transport failure or an error status."""
        try:
            response = await self._client.request(method, table, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise StoreError(f"Request to {table} failed: {type(e).__name__}: {e}", table=table)

        if response.is_success or response.status_code in allowed_statuses:
            return response

        detail = response.text if method != "HEAD" else ""
        raise StoreError(
            f"Store returned {response.status_code} for {table}: {detail}".rstrip(": "),
            table=table,
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
