"""
Dashboard and table overview service.

This module provides:
1. The ship-wide dashboard summary (per-system status, totals, unique cabins)
2. The most recent update timestamp across tables
3. Per-table overviews (row count, fields, sample rows)
"""
import asyncio
import logging
from typing import List, Optional

from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import DEVICE_SYSTEMS, SourceTable
from ship_assistant.schemas.responses import DashboardResponse, TableOverview
from ship_assistant.services.combiner import combine_ship_totals, count_unique_cabins, statuses_by_name
from ship_assistant.services.normalizer import load_all_systems
from ship_assistant.services.service_aggregator import get_all_service_statuses
from ship_assistant.services.store import StoreClient

logger = logging.getLogger(__name__)

SAMPLE_ROW_COUNT = 3


def _row_timestamp(row: dict) -> Optional[str]:
    return row.get("updated_at") or row.get("created_at")


async def get_table_last_updated(store: StoreClient, table: SourceTable) -> Optional[str]:
    """Most recent update (or create) timestamp of one table."""
    rows = await (
        store.table(table)
        .select("created_at,updated_at")
        .order("created_at", desc=True)
        .limit(1)
        .fetch()
    )
    return _row_timestamp(rows[0]) if rows else None


async def get_latest_timestamp(store: StoreClient) -> Optional[str]:
    """
    Latest update timestamp across all tables.

    Tables that cannot be read, or lack timestamp columns, are skipped.

    Returns:
        ISO timestamp string, or None when no table reports one
    """
    async def safe(table: SourceTable) -> Optional[str]:
        try:
            return await get_table_last_updated(store, table)
        except StoreError as e:
            logger.warning("No timestamp for %s: %s", table.value, e)
            return None

    stamps = await asyncio.gather(*(safe(table) for table in SourceTable))
    stamps = [s for s in stamps if s]
    # ISO-8601 strings in one timezone compare correctly as text
    return max(stamps) if stamps else None


async def get_dashboard_data(store: StoreClient) -> DashboardResponse:
    """
    Build the dashboard summary.

    Args:
        store: Store client

    Returns:
        DashboardResponse with one ServiceStatus per table, ship totals,
        the unique cabin count and the last update timestamp
    """
    statuses, records, last_updated = await asyncio.gather(
        get_all_service_statuses(store),
        load_all_systems(store, DEVICE_SYSTEMS),
        get_latest_timestamp(store),
    )
    return DashboardResponse(
        systems=statuses_by_name(statuses),
        ship_totals=combine_ship_totals(statuses.values()),
        unique_cabins=count_unique_cabins(records.values()),
        last_updated=last_updated,
    )


async def get_table_overview(store: StoreClient, table: SourceTable) -> TableOverview:
    """
    Summarize one table.

    A table that cannot be read yields an overview with zero rows rather than an error.
    """
    overview = TableOverview(table_name=table.value, physical_name=store.physical_name(table))
    try:
        overview.total_count, overview.sample_rows = await asyncio.gather(
            store.table(table).count(),
            store.table(table).select("*").limit(SAMPLE_ROW_COUNT).fetch(),
        )
    except StoreError as e:
        logger.error("Could not read overview of %s: %s", overview.physical_name, e)
        return overview

    if overview.sample_rows:
        overview.fields = list(overview.sample_rows[0].keys())
        overview.last_updated = max(
            (stamp for stamp in map(_row_timestamp, overview.sample_rows) if stamp),
            default=None,
        )
    return overview


async def get_all_table_overviews(store: StoreClient) -> List[TableOverview]:
    return list(await asyncio.gather(*(get_table_overview(store, table) for table in SourceTable)))
