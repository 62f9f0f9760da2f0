"""
Unit tests for the store client.

Tests query building, count parsing and error translation against the
in-memory PostgREST stand-in.
"""
import httpx
import pytest

from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.store import StoreClient, parse_content_range


@pytest.mark.parametrize("header,expected", [
    ("0-24/25", 25),
    ("*/0", 0),
    ("1000-1999/2500", 2500),
])
def test_parse_content_range(header, expected):
    assert parse_content_range(header) == expected


@pytest.mark.parametrize("header", [None, "", "0-24/*", "garbage"])
def test_parse_content_range_rejects_missing_total(header):
    with pytest.raises(StoreError):
        parse_content_range(header)


def test_physical_name_uses_prefix(store):
    assert store.physical_name(SourceTable.WIFI) == "wgc_databasewgc_database_wifi"
    assert store.physical_name("some_table") == "some_table"


def test_query_params_are_ordered(store):
    query = (
        store.table(SourceTable.PBX)
        .select("cable_id,user")
        .eq("online__controller_", "ONLINE")
        .ilike("user", "*crew*")
        .is_null("cabin_type")
        .order("created_at", desc=True)
        .limit(1)
    )
    assert query.params() == [
        ("select", "cable_id,user"),
        ("online__controller_", "eq.ONLINE"),
        ("user", "ilike.*crew*"),
        ("cabin_type", "is.null"),
        ("order", "created_at.desc"),
        ("limit", "1"),
    ]


@pytest.mark.asyncio
async def test_count_uses_head_request(postgrest, store, device_row):
    postgrest.add_table(SourceTable.PBX, [device_row(f"P{i}", user="crew" if i % 2 else "pax") for i in range(7)])

    assert await store.table(SourceTable.PBX).count() == 7
    assert await store.table(SourceTable.PBX).ilike("user", "*crew*").count() == 3

    request = postgrest.requests_for(SourceTable.PBX, "HEAD")[0]
    assert request.headers["prefer"] == "count=exact"
    assert request.headers["apikey"] == "test-key"
    assert request.headers["authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_fetch_range_sends_range_headers(postgrest, store, device_row):
    postgrest.add_table(SourceTable.TV, [device_row(f"T{i}") for i in range(10)])

    rows = await store.table(SourceTable.TV).fetch_range(2, 4)

    assert [r["cable_id"] for r in rows] == ["T2", "T3", "T4"]
    request = postgrest.requests_for(SourceTable.TV)[0]
    assert request.headers["range"] == "2-4"
    assert request.headers["range-unit"] == "items"


@pytest.mark.asyncio
async def test_fetch_range_past_end_is_empty(postgrest, store, device_row):
    postgrest.add_table(SourceTable.TV, [device_row("T1")])

    assert await store.table(SourceTable.TV).fetch_range(1000, 1999) == []


@pytest.mark.asyncio
async def test_error_status_raises_store_error(postgrest, store):
    with pytest.raises(StoreError) as exc_info:
        await store.table("missing_table").fetch()

    assert exc_info.value.status_code == 404
    assert exc_info.value.table == "missing_table"
    assert "does not exist" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unknown_column_filter_raises_store_error(postgrest, store, device_row):
    postgrest.add_table(SourceTable.PBX, [device_row("P1")])

    with pytest.raises(StoreError) as exc_info:
        await store.table(SourceTable.PBX).eq("no_such_column", "x").count()

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_transport_error_raises_store_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = StoreClient("http://store.test", "key", transport=httpx.MockTransport(handler))
    async with client:
        with pytest.raises(StoreError) as exc_info:
            await client.table(SourceTable.WIFI).fetch()

    assert "ConnectError" in str(exc_info.value)
