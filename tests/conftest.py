"""
Test configuration and fixtures for the Ship Network Assistant.

This module provides an in-memory stand-in for the PostgREST store API, plus
row factories shaped like the real inventory tables. No network access or
real store is needed.
"""
import fnmatch
import os
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from ship_assistant.config import DEFAULT_TABLE_PREFIX, STORE_ROW_CAP
from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.store import StoreClient

REST_PREFIX = "/rest/v1/"


class FakePostgrest:
    """
    Serve inventory tables the way PostgREST does.

    Supports column projection, eq/neq/ilike/is filters, ordering, limit,
    Range windows capped at 1000 rows, and HEAD exact counts. Every request
    is recorded, and ``fail_when`` injects 500 responses.
    """

    def __init__(self, table_prefix: str = DEFAULT_TABLE_PREFIX):
        self.table_prefix = table_prefix
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.columns: Dict[str, set] = {}
        self.requests: List[httpx.Request] = []
        self.fail_when: Optional[Callable[[httpx.Request], bool]] = None

    def physical(self, table) -> str:
        if isinstance(table, SourceTable):
            return f"{self.table_prefix}{table.value}"
        return table

    def add_table(self, table, rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> None:
        name = self.physical(table)
        self.tables[name] = [dict(row) for row in rows]
        known = set(columns or [])
        for row in rows:
            known.update(row)
        self.columns[name] = known

    def requests_for(self, table, method: Optional[str] = None) -> List[httpx.Request]:
        path = REST_PREFIX + self.physical(table)
        return [
            r for r in self.requests
            if r.url.path == path and (method is None or r.method == method)
        ]

    def client(self, **kwargs) -> StoreClient:
        return StoreClient(
            "http://store.test",
            "test-key",
            table_prefix=self.table_prefix,
            transport=httpx.MockTransport(self.handler),
            **kwargs
        )

    @staticmethod
    def _error(status: int, code: str, message: str) -> httpx.Response:
        return httpx.Response(status, json={"code": code, "message": message, "details": None, "hint": None})

    @staticmethod
    def _matches(row: Dict[str, Any], column: str, expression: str) -> bool:
        operator, _, value = expression.partition(".")
        actual = row.get(column)
        if operator == "is":
            return actual is None if value == "null" else False
        if actual is None:
            return False
        if operator == "eq":
            return str(actual) == value
        if operator == "neq":
            return str(actual) != value
        if operator == "ilike":
            return fnmatch.fnmatchcase(str(actual).lower(), value.lower())
        raise ValueError(f"Unsupported operator {operator}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_when is not None and self.fail_when(request):
            return self._error(500, "XX000", "injected failure")

        name = request.url.path[len(REST_PREFIX):]
        if name not in self.tables:
            return self._error(404, "42P01", f'relation "public.{name}" does not exist')
        rows = self.tables[name]
        columns = self.columns[name]

        select, order, limit = "*", None, None
        for key, expression in request.url.params.multi_items():
            if key == "select":
                select = expression
            elif key == "order":
                order = expression
            elif key == "limit":
                limit = int(expression)
            else:
                if key not in columns:
                    return self._error(400, "42703", f"column {name}.{key} does not exist")
                rows = [row for row in rows if self._matches(row, key, expression)]

        if order:
            column, _, direction = order.partition(".")
            rows = sorted(rows, key=lambda r: (r.get(column) is None, str(r.get(column))),
                          reverse=direction == "desc")

        total = len(rows)
        if request.method == "HEAD":
            content_range = f"0-{total - 1}/{total}" if total else "*/0"
            return httpx.Response(200, headers={"Content-Range": content_range})

        if select != "*":
            wanted = [c for c in select.split(",") if c]
            missing = [c for c in wanted if c not in columns]
            if missing:
                return self._error(400, "42703", f"column {name}.{missing[0]} does not exist")
            rows = [{c: row.get(c) for c in wanted} for row in rows]

        start = 0
        end = STORE_ROW_CAP - 1
        if "range" in request.headers:
            start_text, _, end_text = request.headers["range"].partition("-")
            start, end = int(start_text), int(end_text)
            if total and start >= total:
                return httpx.Response(416, headers={"Content-Range": f"*/{total}"}, json=[])
        end = min(end, start + STORE_ROW_CAP - 1)
        if limit is not None:
            end = min(end, start + limit - 1)
        page = rows[start:end + 1]
        status = 206 if "range" in request.headers else 200
        return httpx.Response(status, json=page)


def make_device_row(
    cable_id: str,
    cabin: str = "",
    user: str = "crew",
    inside_cabin: Optional[str] = "yes",
    online: Optional[str] = "ONLINE",
    online_field: str = "online__controller_",
    **extra
) -> Dict[str, Any]:
    """Row shaped like the wifi/pbx/tv tables."""
    row = {
        "cable_id": cable_id,
        "dk": "5",
        "fz": "3",
        "primary_cabin__rccl_": cabin,
        "device_name___extension": f"dev-{cable_id}",
        "device_type__vendor_": "Cisco",
        "mac_address": "",
        "user": user,
        "rdp_yard": "102B",
        "cable_origin__switch_": "SW-1",
        "beaty_remarks": None,
        "created_at": "2024-05-01T10:00:00+00:00",
        "updated_at": None,
    }
    if inside_cabin is not None:
        row["inside_cabin"] = inside_cabin
    if online_field:
        row[online_field] = online
    row.update(extra)
    return row


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("SUPABASE_URL", os.environ.get("TEST_SUPABASE_URL", "http://store.test"))
    monkeypatch.setenv("SUPABASE_KEY", "dummy_key_for_tests")


@pytest.fixture
def postgrest():
    return FakePostgrest()


@pytest.fixture
def store(postgrest):
    return postgrest.client()


@pytest.fixture
def device_row():
    """Factory for device-table rows."""
    return make_device_row
