"""
Service status aggregation for the Ship Network Assistant.

This module provides:
1. Online/offline x crew/pax x cabin/public counts per system from count-only queries
2. A full-scan fallback when the table lacks a field the count predicates need
3. Graceful degradation: failed quadrants count as zero, failed tables as all-zero
"""
import asyncio
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import CanonicalRecord, SourceTable
from ship_assistant.schemas.responses import CountsByUserType, ServiceStatus
from ship_assistant.services.field_probe import first_present_field, probe_row, sample_row
from ship_assistant.services.normalizer import load_system_records
from ship_assistant.services.store import Filter, StoreClient, TableQuery, eq, ilike

logger = logging.getLogger(__name__)

# WiFi deployments disagree on the online column name; first match wins
WIFI_ONLINE_FIELD_CANDIDATES = ("online__controller_", "online__at_once_", "online_status", "online")
DEFAULT_ONLINE_FIELD = "online__controller_"
USER_FIELD_CANDIDATES = ("user", "area_type")
INSIDE_CABIN_FIELD = "inside_cabin"

ONLINE_VALUE = "ONLINE"
OFFLINE_VALUE = "OFFLINE"

USER_CLASSES = ("crew", "pax")


class Tally(NamedTuple):
    """Raw counts for one user class within one area scope."""
    total: int = 0
    online: int = 0
    # Explicit OFFLINE count, only gathered where that strategy applies
    offline: int = 0


def empty_service_status() -> ServiceStatus:
    return ServiceStatus()


def uses_explicit_offline(table: SourceTable) -> bool:
    return table is SourceTable.WIFI


def resolve_online_field(table: SourceTable, row: Optional[dict]) -> Optional[str]:
    """Pick the online-status column for a table from a sampled row."""
    if table is SourceTable.WIFI:
        return first_present_field(row, WIFI_ONLINE_FIELD_CANDIDATES)
    return first_present_field(row, (DEFAULT_ONLINE_FIELD,))


def _split(tally: Tally, explicit_offline: bool) -> Tuple[int, int]:
    """Return (online, offline) for a tally."""
    online = min(max(tally.online, 0), max(tally.total, 0))
    remaining = max(0, tally.total - online)
    if explicit_offline and tally.offline > 0:
        return online, min(tally.offline, remaining)
    return online, remaining


def _add(a: CountsByUserType, b: CountsByUserType) -> CountsByUserType:
    return CountsByUserType(**{name: getattr(a, name) + getattr(b, name) for name in CountsByUserType.model_fields})


def build_service_status(
    overall: Dict[str, Tally],
    in_cabin: Optional[Dict[str, Tally]],
    explicit_offline: bool,
    record_count: int = 0,
) -> ServiceStatus:
    """
    Assemble a ServiceStatus from per-user-class tallies.

    Online and offline are resolved first; totals are their sums, so
    ``online + offline == total`` holds for every field.

    Args:
        overall: Tally per user class over the whole table
        in_cabin: Tally per user class restricted to in-cabin records, or None
            when the table has no inside-cabin flag (cabin/public quadrants stay zero)
        explicit_offline: Prefer a non-zero explicit OFFLINE count over subtraction
        record_count: Raw row count of the table

    Returns:
        ServiceStatus
    """
    views = {"online": {}, "offline": {}}
    unknown = 0

    for user_class in USER_CLASSES:
        tally = overall.get(user_class, Tally())
        online_all, offline_all = _split(tally, explicit_offline)
        unknown += tally.total - online_all - offline_all

        views["online"][user_class] = online_all
        views["offline"][user_class] = offline_all

        if in_cabin is None:
            cabin_on = cabin_off = public_on = public_off = 0
        else:
            cabin_on, cabin_off = _split(in_cabin.get(user_class, Tally()), explicit_offline)
            cabin_on = min(cabin_on, online_all)
            cabin_off = min(cabin_off, offline_all)
            public_on = online_all - cabin_on
            public_off = offline_all - cabin_off

        views["online"][f"cabin_{user_class}"] = cabin_on
        views["online"][f"public_{user_class}"] = public_on
        views["offline"][f"cabin_{user_class}"] = cabin_off
        views["offline"][f"public_{user_class}"] = public_off

    online = CountsByUserType(total=views["online"]["crew"] + views["online"]["pax"], **views["online"])
    offline = CountsByUserType(total=views["offline"]["crew"] + views["offline"]["pax"], **views["offline"])

    return ServiceStatus(
        online=online,
        offline=offline,
        total=_add(online, offline),
        record_count=record_count,
        status_unknown=unknown,
    )


async def _safe_count(query: TableQuery, label: str) -> int:
    """Count rows, degrading to zero when the query fails."""
    try:
        return await query.count()
    except StoreError as e:
        logger.warning("Count %s on %s failed, using 0: %s", label, query.table, e)
        return 0


async def _count_tally(
    store: StoreClient,
    table: SourceTable,
    user_field: str,
    online_field: str,
    user_class: str,
    area_filter: Optional[Filter],
    explicit_offline: bool,
) -> Tally:
    def query(*extra: Filter) -> TableQuery:
        q = store.table(table).ilike(user_field, f"*{user_class}*")
        if area_filter is not None:
            q = q.where(area_filter)
        return q.where(*extra)

    scope = "cabin" if area_filter is not None else "all"
    counts = [
        _safe_count(query(), f"{user_class}/{scope}/total"),
        _safe_count(query(eq(online_field, ONLINE_VALUE)), f"{user_class}/{scope}/online"),
    ]
    if explicit_offline:
        counts.append(_safe_count(query(eq(online_field, OFFLINE_VALUE)), f"{user_class}/{scope}/offline"))
    return Tally(*(await asyncio.gather(*counts)))


def tally_records(
    records: Iterable[CanonicalRecord],
    explicit_offline: bool,
) -> Tuple[Dict[str, Tally], Dict[str, Tally]]:
    """Tally normalized records the same way the count predicates do."""
    overall = {user_class: [0, 0, 0] for user_class in USER_CLASSES}
    in_cabin = {user_class: [0, 0, 0] for user_class in USER_CLASSES}

    for record in records:
        user = record.user.lower()
        status = record.online_status
        for user_class in USER_CLASSES:
            if user_class not in user:
                continue
            buckets = [overall[user_class]]
            if record.inside_cabin.lower() == "yes":
                buckets.append(in_cabin[user_class])
            for bucket in buckets:
                bucket[0] += 1
                if status == ONLINE_VALUE:
                    bucket[1] += 1
                elif explicit_offline and status == OFFLINE_VALUE:
                    bucket[2] += 1

    return (
        {k: Tally(*v) for k, v in overall.items()},
        {k: Tally(*v) for k, v in in_cabin.items()},
    )


async def scan_service_status(
    store: StoreClient,
    table: SourceTable,
    has_area_flag: bool,
    record_count: Optional[int] = None,
) -> ServiceStatus:
    """Compute a ServiceStatus by reading and normalizing every row of the table."""
    records = await load_system_records(store, table)
    explicit = uses_explicit_offline(table)
    overall, in_cabin = tally_records(records, explicit)
    return build_service_status(
        overall,
        in_cabin if has_area_flag else None,
        explicit,
        record_count=len(records) if record_count is None else record_count,
    )


async def get_service_status(store: StoreClient, table: SourceTable) -> ServiceStatus:
    """
    Compute the online/offline x crew/pax x cabin/public breakdown for one table.

    Args:
        store: Store client
        table: Source table

    Returns:
        ServiceStatus; all-zero if the table cannot be read at all
    """
    try:
        row = await sample_row(store, table)
        record_count = await store.table(table).count()
    except StoreError as e:
        logger.error("Could not read %s, reporting zero status: %s", store.physical_name(table), e)
        return empty_service_status()

    if row is None:
        return empty_service_status()

    user_field = first_present_field(row, USER_FIELD_CANDIDATES)
    online_field = resolve_online_field(table, row)
    has_area_flag = probe_row(row, INSIDE_CABIN_FIELD).exists
    explicit = uses_explicit_offline(table)

    if user_field is None or online_field is None:
        logger.info(
            "%s lacks a user or online field (user=%s, online=%s), scanning rows",
            table.value, user_field, online_field
        )
        return await scan_service_status(store, table, has_area_flag, record_count)

    area_filter = ilike(INSIDE_CABIN_FIELD, "yes")
    tasks = [
        _count_tally(store, table, user_field, online_field, user_class, None, explicit)
        for user_class in USER_CLASSES
    ]
    if has_area_flag:
        tasks.extend(
            _count_tally(store, table, user_field, online_field, user_class, area_filter, explicit)
            for user_class in USER_CLASSES
        )
    results: List[Tally] = await asyncio.gather(*tasks)

    overall = dict(zip(USER_CLASSES, results[:len(USER_CLASSES)]))
    in_cabin = dict(zip(USER_CLASSES, results[len(USER_CLASSES):])) if has_area_flag else None
    return build_service_status(overall, in_cabin, explicit, record_count=record_count)


async def get_all_service_statuses(
    store: StoreClient,
    tables: Sequence[SourceTable] = tuple(SourceTable),
) -> Dict[SourceTable, ServiceStatus]:
    """Compute ServiceStatus for several tables concurrently."""
    statuses = await asyncio.gather(*(get_service_status(store, table) for table in tables))
    return dict(zip(tables, statuses))
