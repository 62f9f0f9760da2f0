"""
Paginated fetching for the Ship Network Assistant.

The store caps every row request at 1000 rows, so whole tables are read in
sequential range windows until a short or empty page comes back.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from ship_assistant.config import STORE_ROW_CAP
from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.store import Filter, StoreClient

logger = logging.getLogger(__name__)


async def fetch_all_rows(
    store: StoreClient,
    table: Union[SourceTable, str],
    columns: str = "*",
    filters: Optional[Iterable[Filter]] = None,
    page_size: Optional[int] = None,
    max_pages: Optional[int] = None,
    order_by: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch every row of a table, stepping past the per-request row cap.

    Pages are requested strictly in order. A failed page stops pagination and
    the rows collected so far are returned; this function never raises StoreError.

    Args:
        store: Store client
        table: Source table or physical table name
        columns: Column projection
        filters: Optional filters applied to every page
        page_size: Rows per page, clamped to the store's cap (defaults to the client's setting)
        max_pages: Safety bound on the number of page requests (defaults to the client's setting)
        order_by: Optional column giving a deterministic row order

    Returns:
        All rows collected, in page order
    """
    page_size = min(max(page_size or store.page_size, 1), STORE_ROW_CAP)
    max_pages = max_pages or store.max_pages
    filters = list(filters or [])
    rows: List[Dict[str, Any]] = []
    name = store.physical_name(table)

    for page in range(max_pages):
        offset = page * page_size
        query = store.table(table).select(columns).where(*filters)
        if order_by:
            query = query.order(order_by)

        try:
            batch = await query.fetch_range(offset, offset + page_size - 1)
        except StoreError as e:
            logger.error("Error fetching %s rows %d-%d: %s", name, offset, offset + page_size - 1, e)
            return rows

        if not batch:
            return rows
        rows.extend(batch)
        if len(batch) < page_size:
            return rows

    logger.warning(
        "Stopped fetching %s after %d pages (%d rows); the table may hold more rows",
        name, max_pages, len(rows)
    )
    return rows
