"""
Cross-system combination of per-system results.
"""
from typing import Iterable, Mapping, Sequence, Set

from ship_assistant.schemas.records import CanonicalRecord
from ship_assistant.schemas.responses import ServiceStatus, ShipTotals
from ship_assistant.services.normalizer import is_valid_cabin


def combine_ship_totals(statuses: Iterable[ServiceStatus]) -> ShipTotals:
    """Sum total, online and offline device counts across systems."""
    totals = ShipTotals()
    for status in statuses:
        totals.total += status.total.total
        totals.online += status.online.total
        totals.offline += status.offline.total
    return totals


def unique_cabins(record_sets: Iterable[Sequence[CanonicalRecord]]) -> Set[str]:
    """Union of valid cabin ids across every record set."""
    cabins: Set[str] = set()
    for records in record_sets:
        cabins.update(r.cabin.strip() for r in records if is_valid_cabin(r.cabin))
    return cabins


def count_unique_cabins(record_sets: Iterable[Sequence[CanonicalRecord]]) -> int:
    return len(unique_cabins(record_sets))


def statuses_by_name(statuses: Mapping) -> dict:
    """Key a SourceTable-keyed mapping by source tag, for JSON output."""
    return {getattr(table, "value", table): status for table, status in statuses.items()}
