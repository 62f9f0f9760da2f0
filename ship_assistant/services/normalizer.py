"""
Schema normalization for the Ship Network Assistant.

Each source table names shared concepts differently (the cabin is
``primary_cabin__rccl_`` in the device tables but ``cabin`` in the cabin
switch table, for example). This module maps raw rows onto CanonicalRecord
using a static, per-table synonym table.
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ship_assistant.schemas.records import CanonicalRecord, DEVICE_SYSTEMS, SourceTable
from ship_assistant.services.pagination import fetch_all_rows
from ship_assistant.services.store import Filter, StoreClient

logger = logging.getLogger(__name__)

# Cabin values that mean "no cabin"
PLACEHOLDER_CABINS = frozenset({"", "-", "undefined", "null"})

FieldMapping = Dict[str, Tuple[str, ...]]

# Canonical field -> table columns, first present column wins
_DEVICE_TABLE_MAPPING: FieldMapping = {
    "cable_id": ("cable_id",),
    "deck": ("dk", "deck"),
    "fire_zone": ("fz", "fire_zone"),
    "frame": ("frame",),
    "side": ("side",),
    "cabin": ("primary_cabin__rccl_", "cabin", "cabin_number"),
    "cabin_type": ("cabin_type",),
    "device_name": ("device_name___extension", "device_name", "name"),
    "device_type": ("device_type__vendor_", "device_type", "type"),
    "mac_address": ("mac_address", "mac"),
    "inside_cabin": ("inside_cabin",),
    "user": ("user", "area_type"),
    "remarks": ("beaty_remarks", "detail", "remarks"),
    "origin_switch": ("cable_origin__switch_", "switch", "origin_switch"),
    "rdp": ("rdp_yard", "rdp", "rdp_name"),
    "blade_port": ("blade_port", "port"),
    "system": ("system",),
    "area": ("area",),
    "location": ("location",),
    "installed": ("installed", "status"),
    "online_status": ("online__controller_", "online__at_once_", "online_status", "online"),
}

SCHEMA_MAPPINGS: Dict[SourceTable, FieldMapping] = {
    SourceTable.WIFI: dict(_DEVICE_TABLE_MAPPING),
    SourceTable.PBX: dict(_DEVICE_TABLE_MAPPING),
    SourceTable.TV: dict(_DEVICE_TABLE_MAPPING),
    SourceTable.CABIN_SWITCH: {
        **_DEVICE_TABLE_MAPPING,
        "cabin": ("cabin", "cabin_number", "primary_cabin__rccl_"),
        "user": ("area_type", "user"),
        "origin_switch": ("switch", "cable_origin__switch_", "origin_switch"),
    },
    SourceTable.FIELD_CABLES: {
        **_DEVICE_TABLE_MAPPING,
        "remarks": ("detail", "beaty_remarks", "remarks"),
    },
    SourceTable.EXTRACTED: dict(_DEVICE_TABLE_MAPPING),
}

CANONICAL_FIELDS: Tuple[str, ...] = tuple(f for f in CanonicalRecord.model_fields if f != "source_table")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_valid_cabin(cabin: Optional[str]) -> bool:
    """True unless the value is missing or one of the placeholder tokens."""
    if cabin is None:
        return False
    return cabin.strip() not in PLACEHOLDER_CABINS


def resolve_field(raw: Mapping[str, Any], synonyms: Sequence[str]) -> Optional[str]:
    """Return the first synonym that is a key of the raw record."""
    for synonym in synonyms:
        if synonym in raw:
            return synonym
    return None


def normalize_record(raw: Mapping[str, Any], source: SourceTable) -> CanonicalRecord:
    """
    Map one raw row onto the canonical record shape.

    Args:
        raw: Row as returned by the store
        source: Table the row came from

    Returns:
        CanonicalRecord with every field a string
    """
    mapping = SCHEMA_MAPPINGS[source]
    values = {}
    for canonical in CANONICAL_FIELDS:
        column = resolve_field(raw, mapping.get(canonical, ()))
        values[canonical] = _as_text(raw[column]) if column else ""
    return CanonicalRecord(source_table=source.value, **values)


def normalize_records(rows: Iterable[Mapping[str, Any]], source: SourceTable) -> List[CanonicalRecord]:
    return [normalize_record(row, source) for row in rows]


async def load_system_records(
    store: StoreClient,
    source: SourceTable,
    filters: Optional[Iterable[Filter]] = None,
) -> List[CanonicalRecord]:
    """Fetch a whole table and normalize it."""
    rows = await fetch_all_rows(store, source, filters=filters)
    return normalize_records(rows, source)


async def load_all_systems(
    store: StoreClient,
    systems: Sequence[SourceTable] = DEVICE_SYSTEMS,
) -> Dict[SourceTable, List[CanonicalRecord]]:
    """Fetch and normalize several tables concurrently."""
    results = await asyncio.gather(*(load_system_records(store, system) for system in systems))
    loaded = dict(zip(systems, results))
    logger.info(
        "Loaded records: %s",
        ", ".join(f"{system.value}={len(records)}" for system, records in loaded.items())
    )
    return loaded
