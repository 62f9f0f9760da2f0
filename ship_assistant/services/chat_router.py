"""
Chat router for the Ship Network Assistant.

This module provides keyword-based routing of free-text questions to:
1. Table overviews
2. The cabin distribution analyzer
3. The service status aggregator
4. The generic field distribution engine
and turns their outputs into a short answer.
"""
import logging
import re
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ship_assistant.config import DEFAULT_TABLE_PREFIX, load_yaml_config
from ship_assistant.schemas.records import CanonicalRecord, DEVICE_SYSTEMS, SourceTable
from ship_assistant.schemas.responses import ChatResponse, ServiceStatus
from ship_assistant.services.cabin_distribution import (
    analyze_cabin_distribution, cabins_with_exact_count, cabins_with_more_than,
    classify_cabin_occupancy, group_by_cabin, sort_cabin_ids
)
from ship_assistant.services.combiner import combine_ship_totals
from ship_assistant.services.dashboard import get_all_table_overviews, get_table_overview
from ship_assistant.services.domain_glossary import DOMAIN_GLOSSARY
from ship_assistant.services.field_distribution import (
    ANY_NUMBER_PATTERN, answer_field_query, detect_field, extract_comparison, extract_number, term_pattern
)
from ship_assistant.services.normalizer import load_all_systems, load_system_records
from ship_assistant.services.service_aggregator import get_all_service_statuses, get_service_status
from ship_assistant.services.store import StoreClient

logger = logging.getLogger(__name__)

_SYSTEM_TERMS: Dict[str, List[str]] = load_yaml_config('semantic_mapping.yaml', 'systems')
_ROUTE_TERMS: Dict[str, List[str]] = load_yaml_config('semantic_mapping.yaml', 'routes')

SYSTEM_PATTERNS: List[Tuple[SourceTable, List[re.Pattern]]] = [
    (SourceTable(name), [term_pattern(term) for term in terms])
    for name, terms in _SYSTEM_TERMS.items()
]
ROUTE_PATTERNS: Dict[str, List[re.Pattern]] = {
    route: [term_pattern(term) for term in terms]
    for route, terms in _ROUTE_TERMS.items()
}

CABIN_PATTERN = re.compile(r'\bcabins?\b', re.IGNORECASE)
CREW_PATTERN = re.compile(r'\bcrew\b', re.IGNORECASE)
PAX_PATTERN = re.compile(r'\b(pax|passengers?|guests?)\b', re.IGNORECASE)

# A number only describes a device count when a device noun follows it
_COUNT_NOUNS = ["device", "outlet", "unit", "port", "socket"] + [t for terms in _SYSTEM_TERMS.values() for t in terms]
DEVICE_COUNT_PATTERN = re.compile(
    r'(?<!cabin\s)' + ANY_NUMBER_PATTERN.pattern + r'\s+(?:[\w-]+\s+)?(?:'
    + '|'.join(r'[\s_]+'.join(map(re.escape, re.split(r'[\s_]+', noun))) for noun in _COUNT_NOUNS)
    + r')(?:s|es)?\b',
    re.IGNORECASE,
)

FIELD_SEARCH_SYSTEMS = DEVICE_SYSTEMS + (SourceTable.FIELD_CABLES,)
MAX_LISTED = 50

HELP_TEXT = (
    "I can answer questions about the ship's WiFi, PBX, TV, cabin switch and field cable inventory:\n"
    "- Status: 'how many crew phones are offline?', 'wifi status'\n"
    "- Cabins: 'how many cabins have exactly two phones?', 'tv cabins with more than 3 outlets'\n"
    "- Fields: 'how many unique rdp', 'distribution per deck', 'list fire zones with more than 10 devices'\n"
    "- Schema: 'database overview'"
)


class ChatRoute(str, Enum):
    SCHEMA = "schema"
    SERVICE_STATUS = "service_status"
    CABIN_DISTRIBUTION = "cabin_distribution"
    FIELD_DISTRIBUTION = "field_distribution"
    HELP = "help"


def _matches(patterns: List[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def detect_system(text: str) -> Optional[SourceTable]:
    """First system named in the text, in configured order."""
    for system, patterns in SYSTEM_PATTERNS:
        if _matches(patterns, text):
            return system
    return None


def resolve_system_hint(hint: Optional[str]) -> Optional[SourceTable]:
    """
    Resolve a caller-supplied system name.

    Raises:
        ValueError: If the hint names no known system
    """
    if hint is None or not hint.strip():
        return None
    system = SourceTable.parse(hint, DEFAULT_TABLE_PREFIX) or detect_system(hint)
    if system is None:
        raise ValueError(f"Unknown system: {hint}")
    return system


def strip_system_terms(text: str) -> str:
    """Blank out system names so words like "switch" in "cabin switch" are not read as fields."""
    for _, patterns in SYSTEM_PATTERNS:
        for pattern in patterns:
            text = pattern.sub(" ", text)
    return text


def detect_message_field(message: str) -> Optional[str]:
    return detect_field(strip_system_terms(message))


def classify_route(message: str, system: Optional[SourceTable]) -> ChatRoute:
    """Pick the analysis for a message; checks run in priority order."""
    if _matches(ROUTE_PATTERNS.get("schema", []), message):
        return ChatRoute.SCHEMA
    if (
        CABIN_PATTERN.search(strip_system_terms(message))
        and system in DEVICE_SYSTEMS
        and (_matches(ROUTE_PATTERNS.get("cabin_shape", []), message) or DEVICE_COUNT_PATTERN.search(message))
    ):
        return ChatRoute.CABIN_DISTRIBUTION
    if _matches(ROUTE_PATTERNS.get("status", []), message):
        return ChatRoute.SERVICE_STATUS
    if detect_message_field(message):
        return ChatRoute.FIELD_DISTRIBUTION
    return ChatRoute.HELP


def format_status(name: str, status: ServiceStatus) -> str:
    on, off, total = status.online, status.offline, status.total
    lines = [
        f"{name}: {on.total} online, {off.total} offline of {total.total} devices",
        f"  crew: {on.crew} online / {off.crew} offline (cabin {total.cabin_crew}, public {total.public_crew})",
        f"  pax: {on.pax} online / {off.pax} offline (cabin {total.cabin_pax}, public {total.public_pax})",
    ]
    if status.status_unknown:
        lines.append(f"  {status.status_unknown} devices report neither ONLINE nor OFFLINE")
    return "\n".join(lines)


async def _answer_schema(store: StoreClient, system: Optional[SourceTable]) -> ChatResponse:
    overviews = [await get_table_overview(store, system)] if system else await get_all_table_overviews(store)
    lines = [f"- {o.table_name} ({o.physical_name}): {o.total_count} rows, {len(o.fields)} fields" for o in overviews]
    return ChatResponse(
        answer="Database overview:\n" + "\n".join(lines),
        route=ChatRoute.SCHEMA.value,
        system=system.value if system else None,
        rows=[o.model_dump() for o in overviews],
    )


async def _answer_status(store: StoreClient, system: Optional[SourceTable]) -> ChatResponse:
    if system is not None:
        status = await get_service_status(store, system)
        return ChatResponse(
            answer=format_status(system.value, status),
            route=ChatRoute.SERVICE_STATUS.value,
            system=system.value,
            data=status.model_dump(),
        )

    statuses = await get_all_service_statuses(store)
    totals = combine_ship_totals(statuses.values())
    lines = [format_status(table.value, status) for table, status in statuses.items()]
    lines.append(f"Ship total: {totals.online} online, {totals.offline} offline of {totals.total} devices")
    return ChatResponse(
        answer="\n".join(lines),
        route=ChatRoute.SERVICE_STATUS.value,
        data={
            "systems": {table.value: status.model_dump() for table, status in statuses.items()},
            "ship_totals": totals.model_dump(),
        },
    )


def _restrict_to_user_class(message: str, records: List[CanonicalRecord]) -> Tuple[List[CanonicalRecord], str]:
    """Keep only crew-only or pax-only cabins when the message asks for them."""
    if CREW_PATTERN.search(message):
        keep, label = set(classify_cabin_occupancy(records).crew_only), "crew "
    elif PAX_PATTERN.search(message):
        keep, label = set(classify_cabin_occupancy(records).pax_only), "pax "
    else:
        return records, ""
    return [r for r in records if r.cabin.strip() in keep], label


async def _answer_cabins(store: StoreClient, message: str, system: SourceTable) -> ChatResponse:
    records, label = _restrict_to_user_class(message, await load_system_records(store, system))
    distribution = analyze_cabin_distribution(records, system)
    comparison = extract_comparison(message)
    number = extract_number(message)

    if comparison is not None:
        direction, number = comparison
        if direction == ">":
            cabins = cabins_with_more_than(records, number)
            phrase = f"more than {number}"
        else:
            groups = group_by_cabin(records)
            cabins = sort_cabin_ids(c for c, group in groups.items() if len(group) < number)
            phrase = f"fewer than {number}"
    elif number is not None:
        cabins = cabins_with_exact_count(records, number)
        phrase = f"exactly {number}"
    else:
        answer = (
            f"{system.value} devices per {label}cabin across {distribution.total_cabins} cabins:\n"
            f"- 1 device: {distribution.single}\n"
            f"- 2 devices: {distribution.double}\n"
            f"- 3 devices: {distribution.triple}\n"
            f"- 4 or more: {distribution.four_or_more}\n"
            f"Most devices in one cabin: {distribution.max_count}"
        )
        return ChatResponse(
            answer=answer,
            route=ChatRoute.CABIN_DISTRIBUTION.value,
            system=system.value,
            data=distribution.model_dump(),
        )

    answer = f"{len(cabins)} {label}cabins have {phrase} {system.value} devices."
    if cabins:
        shown = ", ".join(cabins[:MAX_LISTED])
        more = f" and {len(cabins) - MAX_LISTED} more" if len(cabins) > MAX_LISTED else ""
        answer += f"\nCabins: {shown}{more}"
    return ChatResponse(
        answer=answer,
        route=ChatRoute.CABIN_DISTRIBUTION.value,
        system=system.value,
        data=distribution.model_dump(),
        rows=[{"cabin": c, "devices": distribution.cabin_counts[c]} for c in cabins],
    )


async def _answer_field(store: StoreClient, message: str, system: Optional[SourceTable]) -> ChatResponse:
    if system is not None:
        records = await load_system_records(store, system)
    else:
        loaded = await load_all_systems(store, FIELD_SEARCH_SYSTEMS)
        records = [record for batch in loaded.values() for record in batch]

    result = answer_field_query(message, records, field=detect_message_field(message))
    if result.distribution:
        rows = [item.model_dump() for item in result.distribution]
    elif result.values:
        rows = [{"value": value} for value in result.values]
    else:
        rows = None
    return ChatResponse(
        answer=result.answer,
        route=ChatRoute.FIELD_DISTRIBUTION.value,
        system=system.value if system else None,
        data=result.model_dump(exclude={"distribution", "values"}),
        rows=rows,
    )


def _answer_help() -> ChatResponse:
    terms = ", ".join(DOMAIN_GLOSSARY)
    return ChatResponse(
        answer=f"{HELP_TEXT}\n\nTerms I know: {terms}",
        route=ChatRoute.HELP.value,
    )


async def answer_chat(store: StoreClient, message: str, system_hint: Optional[str] = None) -> ChatResponse:
    """
    Route a free-text question and answer it.

    Args:
        store: Store client
        message: Free-text question
        system_hint: Optional system name narrowing the question

    Returns:
        ChatResponse

    Raises:
        ValueError: If the system hint names no known system
    """
    system = resolve_system_hint(system_hint) or detect_system(message)
    route = classify_route(message, system)
    logger.info("Chat route %s (system=%s) for %r", route.value, system.value if system else None, message)

    if route is ChatRoute.SCHEMA:
        return await _answer_schema(store, system)
    if route is ChatRoute.CABIN_DISTRIBUTION:
        return await _answer_cabins(store, message, system)
    if route is ChatRoute.SERVICE_STATUS:
        return await _answer_status(store, system)
    if route is ChatRoute.FIELD_DISTRIBUTION:
        return await _answer_field(store, message, system)
    return _answer_help()
