"""
Cabin and public cable lists.

Rows are read in full, normalized and annotated with their current offline
state. The authoritative controller status lives in the extracted table,
keyed by cable id; a ``C<digits>`` id there also covers the matching pbx, tv
and wifi outlets.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Sequence

from ship_assistant.schemas.records import CABIN_LIST_SYSTEMS, CanonicalRecord, SourceTable
from ship_assistant.schemas.responses import CableListEntry, CableListResponse
from ship_assistant.services.cabin_distribution import cabin_sort_key
from ship_assistant.services.field_probe import FieldPresence, probe_field
from ship_assistant.services.normalizer import is_valid_cabin, load_system_records
from ship_assistant.services.pagination import fetch_all_rows
from ship_assistant.services.store import StoreClient, ilike

logger = logging.getLogger(__name__)

STATUS_FIELD = "online__controller_"
OFFLINE_VALUE = "OFFLINE"
INSIDE_CABIN_FIELD = "inside_cabin"

# Outlet ids a "C<digits>" controller entry also stands for
CABLE_ALIAS_TEMPLATES = ("pbx{}", "tv{}", "tv{}-1", "tv{}-2", "wifi{}")


def cable_aliases(cable_id: str) -> List[str]:
    """All ids a controller cable id covers, itself included."""
    aliases = [cable_id]
    if len(cable_id) > 1 and cable_id[0] in "Cc" and cable_id[1:].isdigit():
        aliases.extend(template.format(cable_id[1:]) for template in CABLE_ALIAS_TEMPLATES)
    return aliases


def build_status_map(rows: Iterable[dict]) -> Dict[str, str]:
    """Map every cable id (and its aliases) to its controller status."""
    status_map: Dict[str, str] = {}
    for row in rows:
        cable_id = str(row.get("cable_id") or "").strip()
        status = str(row.get(STATUS_FIELD) or "").strip()
        if not cable_id or not status:
            continue
        for alias in cable_aliases(cable_id):
            status_map[alias.lower()] = status
    return status_map


async def load_status_map(store: StoreClient) -> Dict[str, str]:
    rows = await fetch_all_rows(store, SourceTable.EXTRACTED, columns=f"cable_id,{STATUS_FIELD}")
    return build_status_map(rows)


def annotate(records: Iterable[CanonicalRecord], status_map: Dict[str, str]) -> List[CableListEntry]:
    """Attach the offline flag, preferring the controller status over the record's own."""
    entries = []
    for record in records:
        status = status_map.get(record.cable_id.lower(), record.online_status)
        entry = CableListEntry(**record.model_dump())
        entry.online_status = status
        entry.offline = status.upper() == OFFLINE_VALUE
        entries.append(entry)
    return entries


def in_area(record: CanonicalRecord, inside: bool) -> bool:
    """Area test for one record; without an inside-cabin flag a valid cabin id means inside."""
    flag = record.inside_cabin.strip().lower()
    if flag:
        return flag == ("yes" if inside else "no")
    return is_valid_cabin(record.cabin) == inside


async def load_area_records(store: StoreClient, system: SourceTable, inside: bool) -> List[CanonicalRecord]:
    """
    Load the records of one system that sit inside (or outside) cabins.

    The area filter is pushed to the store only when the table is known to
    carry the inside-cabin flag; otherwise the whole table is read and
    filtered here.
    """
    probe = await probe_field(store, system, INSIDE_CABIN_FIELD)
    if probe.presence is FieldPresence.PRESENT:
        area = ilike(INSIDE_CABIN_FIELD, "yes" if inside else "no")
        return await load_system_records(store, system, filters=[area])
    logger.info("%s has no %s flag (%s); filtering by cabin id", system.value, INSIDE_CABIN_FIELD, probe.presence.value)
    return [r for r in await load_system_records(store, system) if in_area(r, inside)]


def _response(entries: List[CableListEntry]) -> CableListResponse:
    return CableListResponse(
        rows=entries,
        total=len(entries),
        offline=sum(1 for e in entries if e.offline),
    )


async def get_cabin_cables(
    store: StoreClient,
    systems: Sequence[SourceTable] = CABIN_LIST_SYSTEMS,
) -> CableListResponse:
    """
    List every in-cabin cable of the given systems.

    Args:
        store: Store client
        systems: Systems to include

    Returns:
        CableListResponse sorted by cabin, then cable id
    """
    loaded, status_map = await asyncio.gather(
        asyncio.gather(*(load_area_records(store, system, inside=True) for system in systems)),
        load_status_map(store),
    )
    records = [record for batch in loaded for record in batch]
    entries = annotate(records, status_map)
    entries.sort(key=lambda e: (cabin_sort_key(e.cabin), e.cable_id))
    logger.info("Cabin cable list: %d rows from %s", len(entries), ", ".join(s.value for s in systems))
    return _response(entries)


async def get_public_cables(store: StoreClient) -> CableListResponse:
    """
    List the public-area cables.

    That is every field cable, plus the offline pbx/tv/wifi outlets that sit
    outside cabins.
    """
    field_cables, outlets, status_map = await asyncio.gather(
        load_system_records(store, SourceTable.FIELD_CABLES),
        asyncio.gather(*(load_area_records(store, system, inside=False) for system in CABIN_LIST_SYSTEMS)),
        load_status_map(store),
    )
    entries = annotate(field_cables, status_map)
    outlet_entries = annotate((r for batch in outlets for r in batch), status_map)
    entries.extend(e for e in outlet_entries if e.offline)
    entries.sort(key=lambda e: e.cable_id)
    return _response(entries)
