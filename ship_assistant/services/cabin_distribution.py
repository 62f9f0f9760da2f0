"""
Cabin distribution analysis.

Groups a system's normalized records by cabin and answers devices-per-cabin
questions such as "how many cabins have exactly two phones?".
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ship_assistant.schemas.records import CanonicalRecord, SourceTable
from ship_assistant.schemas.responses import CabinDistribution, CabinOccupancy
from ship_assistant.services.normalizer import is_valid_cabin


def cabin_sort_key(cabin: str) -> Tuple[int, Union[int, str]]:
    """Integers first in numeric order, then everything else lexicographically."""
    try:
        return 0, int(cabin)
    except ValueError:
        return 1, cabin


def sort_cabin_ids(cabins: Iterable[str]) -> List[str]:
    return sorted(cabins, key=cabin_sort_key)


def group_by_cabin(records: Iterable[CanonicalRecord]) -> Dict[str, List[CanonicalRecord]]:
    """Group records by cabin id, dropping records without a real cabin."""
    groups: Dict[str, List[CanonicalRecord]] = defaultdict(list)
    for record in records:
        if is_valid_cabin(record.cabin):
            groups[record.cabin.strip()].append(record)
    return dict(groups)


def analyze_cabin_distribution(
    records: Iterable[CanonicalRecord],
    system: Union[SourceTable, str],
) -> CabinDistribution:
    """
    Build the devices-per-cabin histogram for one system.

    Args:
        records: Normalized records of a single system
        system: System the records belong to

    Returns:
        CabinDistribution with buckets 1, 2, 3 and 4-or-more
    """
    groups = group_by_cabin(records)
    cabin_counts = {cabin: len(groups[cabin]) for cabin in sort_cabin_ids(groups)}

    buckets = {1: 0, 2: 0, 3: 0, 4: 0}
    for count in cabin_counts.values():
        buckets[min(count, 4)] += 1

    return CabinDistribution(
        system=system.value if isinstance(system, SourceTable) else system,
        total_devices=sum(cabin_counts.values()),
        total_cabins=len(cabin_counts),
        single=buckets[1],
        double=buckets[2],
        triple=buckets[3],
        four_or_more=buckets[4],
        cabin_counts=cabin_counts,
        max_count=max(cabin_counts.values(), default=0),
    )


def cabins_with_exact_count(records: Iterable[CanonicalRecord], device_count: int) -> List[str]:
    """Cabins holding exactly ``device_count`` records, in natural order."""
    groups = group_by_cabin(records)
    return sort_cabin_ids(cabin for cabin, group in groups.items() if len(group) == device_count)


def cabins_with_more_than(records: Iterable[CanonicalRecord], device_count: int) -> List[str]:
    """Cabins holding more than ``device_count`` records, in natural order."""
    groups = group_by_cabin(records)
    return sort_cabin_ids(cabin for cabin, group in groups.items() if len(group) > device_count)


def _user_class(record: CanonicalRecord) -> str:
    user = record.user.lower()
    if "crew" in user:
        return "crew"
    if "pax" in user:
        return "pax"
    return ""


def classify_cabin_occupancy(
    records: Iterable[CanonicalRecord],
    device_count: Optional[int] = None,
) -> CabinOccupancy:
    """
    Split cabins into crew-only, pax-only and mixed by their devices' user class.

    Args:
        records: Normalized records of a single system
        device_count: Only classify cabins holding exactly this many records; all cabins if None

    Returns:
        CabinOccupancy with sorted cabin id lists
    """
    occupancy = CabinOccupancy()
    groups = group_by_cabin(records)
    for cabin in sort_cabin_ids(groups):
        group = groups[cabin]
        if device_count is not None and len(group) != device_count:
            continue
        classes = {_user_class(record) for record in group}
        if classes == {"crew"}:
            occupancy.crew_only.append(cabin)
        elif classes == {"pax"}:
            occupancy.pax_only.append(cabin)
        else:
            occupancy.mixed.append(cabin)
    return occupancy
