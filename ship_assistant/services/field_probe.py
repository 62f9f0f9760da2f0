"""
Field existence probing.

Several tables lack optional columns, and filtering on an absent column makes
the store reject the whole query, so callers check a one-row sample first.
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, NamedTuple, Optional, Sequence, Union

from ship_assistant.errors import StoreError
from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.store import StoreClient

logger = logging.getLogger(__name__)


class FieldPresence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    # Empty table or failed sample: do not filter on the field
    UNKNOWN = "unknown"


class ProbeResult(NamedTuple):
    presence: FieldPresence
    field: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.presence is FieldPresence.PRESENT


def first_present_field(row: Optional[Dict[str, Any]], candidates: Iterable[str]) -> Optional[str]:
    """Return the first candidate that is a key of ``row``."""
    if not row:
        return None
    for candidate in candidates:
        if candidate in row:
            return candidate
    return None


async def sample_row(store: StoreClient, table: Union[SourceTable, str]) -> Optional[Dict[str, Any]]:
    """
    Fetch a single row of a table.

    Returns:
        The row, or None if the table is empty

    Raises:
        StoreError: If the request fails
    """
    rows = await store.table(table).select("*").limit(1).fetch()
    return rows[0] if rows else None


def probe_row(row: Optional[Dict[str, Any]], candidates: Union[str, Sequence[str]]) -> ProbeResult:
    """Probe an already-sampled row."""
    if isinstance(candidates, str):
        candidates = (candidates,)
    if row is None:
        return ProbeResult(FieldPresence.UNKNOWN)
    field = first_present_field(row, candidates)
    if field is None:
        return ProbeResult(FieldPresence.ABSENT)
    return ProbeResult(FieldPresence.PRESENT, field)


async def probe_field(
    store: StoreClient,
    table: Union[SourceTable, str],
    candidates: Union[str, Sequence[str]],
) -> ProbeResult:
    """
    Check whether a field, or the first of an ordered list of synonyms, exists in a table.

    Args:
        store: Store client
        table: Table to sample
        candidates: Field name or ordered candidate names

    Returns:
        ProbeResult naming the matched field when present
    """
    try:
        row = await sample_row(store, table)
    except StoreError as e:
        logger.warning("Could not sample %s to probe %s: %s", store.physical_name(table), candidates, e)
        return ProbeResult(FieldPresence.UNKNOWN)
    return probe_row(row, candidates)


async def field_exists(store: StoreClient, table: Union[SourceTable, str], field: str) -> bool:
    """True only when the field is known to be present."""
    return (await probe_field(store, table, field)).exists
