"""
Unit tests for the dashboard and table overview service.
"""
import pytest

from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.dashboard import (
    get_all_table_overviews, get_dashboard_data, get_latest_timestamp, get_table_overview
)


@pytest.mark.asyncio
async def test_latest_timestamp_prefers_updated_at(postgrest, store, device_row):
    postgrest.add_table(SourceTable.PBX, [
        device_row("P1", created_at="2024-05-04T10:00:00+00:00", updated_at="2024-06-02T08:00:00+00:00"),
        device_row("P2", created_at="2024-05-03T10:00:00+00:00"),
    ])
    postgrest.add_table(SourceTable.TV, [device_row("T1", created_at="2024-05-20T10:00:00+00:00")])

    assert await get_latest_timestamp(store) == "2024-06-02T08:00:00+00:00"


@pytest.mark.asyncio
async def test_latest_timestamp_without_tables_is_none(postgrest, store):
    assert await get_latest_timestamp(store) is None


@pytest.mark.asyncio
async def test_table_overview(postgrest, store, device_row):
    postgrest.add_table(SourceTable.WIFI, [device_row(f"W{i}") for i in range(5)])

    overview = await get_table_overview(store, SourceTable.WIFI)

    assert overview.table_name == "wifi"
    assert overview.physical_name == "wgc_databasewgc_database_wifi"
    assert overview.total_count == 5
    assert len(overview.sample_rows) == 3
    assert "primary_cabin__rccl_" in overview.fields
    assert overview.last_updated == "2024-05-01T10:00:00+00:00"


@pytest.mark.asyncio
async def test_unreadable_table_overview_is_empty(postgrest, store):
    overview = await get_table_overview(store, SourceTable.EXTRACTED)

    assert overview.total_count == 0
    assert overview.fields == []


@pytest.mark.asyncio
async def test_all_overviews_in_table_order(postgrest, store):
    overviews = await get_all_table_overviews(store)

    assert [o.table_name for o in overviews] == [t.value for t in SourceTable]


@pytest.mark.asyncio
async def test_dashboard_data(postgrest, store, device_row):
    postgrest.add_table(SourceTable.PBX, [
        device_row("P1", cabin="100", user="crew"),
        device_row("P2", cabin="101", user="pax", online="OFFLINE"),
    ])
    postgrest.add_table(SourceTable.WIFI, [
        device_row("W1", cabin="100", user="pax"),
        device_row("W2", cabin="-", user="crew", inside_cabin="no"),
    ])

    dashboard = await get_dashboard_data(store)

    assert set(dashboard.systems) == {t.value for t in SourceTable}
    assert dashboard.systems["pbx"].total.total == 2
    assert dashboard.ship_totals.total == 4
    assert dashboard.ship_totals.online == 3
    assert dashboard.ship_totals.offline == 1
    assert dashboard.unique_cabins == 2
    assert dashboard.last_updated == "2024-05-01T10:00:00+00:00"
