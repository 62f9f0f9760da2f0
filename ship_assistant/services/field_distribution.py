"""
Generic field distribution engine.

This module answers "group by field X, apply predicate" questions over a record set:
1. Detecting which field a free-text query is about (via semantic_mapping.yaml)
2. Classifying the query into a closed set of intents
3. Extracting thresholds written as digits or as small English numbers
4. Computing unique counts, value lists, distributions, top-N and threshold filters
"""
import re
from collections import Counter
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ship_assistant.config import load_yaml_config
from ship_assistant.schemas.records import CanonicalRecord
from ship_assistant.schemas.responses import FieldDistribution, FieldQueryResult, ValueCount

FIELD_SYNONYMS: Dict[str, Dict[str, Any]] = load_yaml_config('semantic_mapping.yaml', 'fields')

WORD_NUMBERS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
}

_NUMBER = r'(\d+|' + '|'.join(WORD_NUMBERS) + r')'
_GREATER = r'more\s+than|greater\s+than|over|above|>'
_LESS = r'less\s+than|fewer\s+than|under|below|<'

COMPARISON_PATTERN = re.compile(rf'(?:\b|(?=[<>]))({_GREATER}|{_LESS})\s*{_NUMBER}\b', re.IGNORECASE)
COMPARATOR_PATTERN = re.compile(r'\b(more|greater|over|above|less|fewer|under|below)\b|[<>]', re.IGNORECASE)
ANY_NUMBER_PATTERN = re.compile(rf'\b{_NUMBER}\b', re.IGNORECASE)
LESS_WORDS = frozenset({"less", "fewer", "under", "below", "<"})
NUMERIC_VALUE_PATTERN = re.compile(r'^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)\s*$')

DISTRIBUTION_PATTERN = re.compile(r'\b(per|distribution|breakdown|each|grouped)\b', re.IGNORECASE)
TOP_N_PATTERN = re.compile(r'\b(most|highest|top|largest|busiest)\b', re.IGNORECASE)
COUNT_PATTERN = re.compile(r'\bhow\s+many\b|\bcount\b|\bnumber\s+of\b|\btotal\b', re.IGNORECASE)
LIST_PATTERN = re.compile(r'\b(list|show|which|display|unique|distinct)\b|\bwhat\s+are\b', re.IGNORECASE)


class QueryIntent(str, Enum):
    COUNT = "count"
    LIST = "list"
    DISTRIBUTION = "distribution"
    TOP_N = "top_n"
    THRESHOLD = "threshold"
    UNKNOWN = "unknown"


def term_pattern(term: str) -> re.Pattern:
    words = [re.escape(w) for w in re.split(r'[\s_]+', term.strip()) if w]
    return re.compile(r'\b' + r'[\s_]+'.join(words) + r'(?:s|es)?\b', re.IGNORECASE)


_FIELD_PATTERNS: List[Tuple[str, List[re.Pattern]]] = [
    (field, [term_pattern(term) for term in spec.get("terms", [])])
    for field, spec in FIELD_SYNONYMS.items()
]


def detect_field(query: str) -> Optional[str]:
    """Return the canonical field a query mentions, checking fields in configured order."""
    for field, patterns in _FIELD_PATTERNS:
        if any(p.search(query) for p in patterns):
            return field
    return None


def field_label(field: str) -> str:
    return FIELD_SYNONYMS.get(field, {}).get("label", field)


def classify_intent(query: str) -> QueryIntent:
    """Classify a query; checks run from most to least specific."""
    if COMPARATOR_PATTERN.search(query):
        return QueryIntent.THRESHOLD
    if DISTRIBUTION_PATTERN.search(query):
        return QueryIntent.DISTRIBUTION
    if TOP_N_PATTERN.search(query):
        return QueryIntent.TOP_N
    if COUNT_PATTERN.search(query):
        return QueryIntent.COUNT
    if LIST_PATTERN.search(query):
        return QueryIntent.LIST
    return QueryIntent.UNKNOWN


def _to_int(token: str) -> int:
    token = token.lower()
    if token in WORD_NUMBERS:
        return WORD_NUMBERS[token]
    return int(token)


def extract_comparison(query: str) -> Optional[Tuple[str, int]]:
    """Return (">" or "<", value) for a phrase like "more than two", or None."""
    match = COMPARISON_PATTERN.search(query)
    if not match:
        return None
    operator = match.group(1).lower()
    direction = "<" if re.fullmatch(_LESS, operator, re.IGNORECASE) else ">"
    return direction, _to_int(match.group(2))


def comparison_direction(query: str) -> str:
    """Return '<' when the comparator word in the query means less, else '>'."""
    match = COMPARATOR_PATTERN.search(query)
    if match and match.group(0).lower() in LESS_WORDS:
        return "<"
    return ">"


def extract_number(query: str) -> Optional[int]:
    """First number in the query, digits or one..fifteen."""
    match = ANY_NUMBER_PATTERN.search(query)
    return _to_int(match.group(1)) if match else None


def extract_threshold(query: str) -> Optional[int]:
    """
    Extract the threshold of a comparison query.

    The number directly after a comparator wins; otherwise the first number
    anywhere in the query. Returns None when no number is recognizable.
    """
    comparison = extract_comparison(query)
    if comparison is not None:
        return comparison[1]
    return extract_number(query)


def _as_mapping(record: Union[CanonicalRecord, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(record, CanonicalRecord):
        return record.model_dump()
    return record


def _value(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    return str(value).strip()


def resolve_record_key(records: Sequence[Mapping[str, Any]], field: str) -> Optional[str]:
    """Find which key actually carries ``field`` in the records, judged from the first record."""
    if not records:
        return None
    candidates = [field] + [k for k in FIELD_SYNONYMS.get(field, {}).get("keys", []) if k != field]
    sample = records[0]
    for candidate in candidates:
        if candidate in sample:
            return candidate
    return None


def _is_number(value: str) -> bool:
    return NUMERIC_VALUE_PATTERN.match(value) is not None


def sort_values(values: Iterable[str]) -> List[str]:
    """Numeric order if every value parses as a number, else lexicographic."""
    values = list(values)
    if values and all(_is_number(v) for v in values):
        return sorted(values, key=float)
    return sorted(values)


def unique_values(records: Iterable[Union[CanonicalRecord, Mapping[str, Any]]], key: str) -> List[str]:
    """Distinct non-empty values of ``key``."""
    return sort_values({_value(_as_mapping(r), key) for r in records} - {""})


def analyze_field_distribution(
    records: Sequence[Union[CanonicalRecord, Mapping[str, Any]]],
    key: str,
) -> FieldDistribution:
    """
    Count records per value of one field.

    Records with a missing or empty value are counted in ``total_records``
    but not in the distribution.
    """
    counter = Counter(_value(_as_mapping(r), key) for r in records)
    counter.pop("", None)
    distribution = [
        ValueCount(value=value, count=count)
        for value, count in sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    ]
    return FieldDistribution(
        field=key,
        total_records=len(records),
        unique_values=len(counter),
        distribution=distribution,
    )


def _format_counts(distribution: Sequence[ValueCount], limit: int = 20) -> str:
    lines = [f"- {item.value}: {item.count}" for item in distribution[:limit]]
    if len(distribution) > limit:
        lines.append(f"... and {len(distribution) - limit} more")
    return "\n".join(lines)


def answer_field_query(
    query: str,
    records: Sequence[Union[CanonicalRecord, Mapping[str, Any]]],
    top_n: int = 10,
    field: Optional[str] = None,
) -> FieldQueryResult:
    """
    Answer a free-text question about one field of a record set.

    Args:
        query: Free-text question
        records: Canonical records or raw rows
        top_n: Default N for "top" questions that do not name one
        field: Canonical field to answer about; detected from the query when omitted

    Returns:
        FieldQueryResult; ``resolved`` is False when the field, the threshold
        or the kind of question could not be determined
    """
    intent = classify_intent(query)
    field = field or detect_field(query)
    if field is None:
        return FieldQueryResult(
            query=query,
            intent=intent.value,
            resolved=False,
            answer="Could not determine which field your query refers to.",
        )

    rows = [_as_mapping(r) for r in records]
    label = field_label(field)
    key = resolve_record_key(rows, field)
    if key is None:
        return FieldQueryResult(
            query=query,
            intent=intent.value,
            resolved=False,
            field=field,
            answer=f"Could not find a {label} field in the records.",
        )

    dist = analyze_field_distribution(rows, key)
    result = FieldQueryResult(query=query, intent=intent.value, field=key, answer="")

    if intent is QueryIntent.THRESHOLD:
        comparison = extract_comparison(query)
        threshold = comparison[1] if comparison else extract_threshold(query)
        if threshold is None:
            result.resolved = False
            result.answer = "Could not determine a threshold from your query."
            return result
        direction = comparison[0] if comparison else comparison_direction(query)
        if direction == ">":
            matching = [item for item in dist.distribution if item.count > threshold]
            phrase = "more than"
        else:
            matching = [item for item in dist.distribution if item.count < threshold]
            phrase = "fewer than"
        result.threshold = threshold
        result.distribution = matching
        result.values = sort_values(item.value for item in matching)
        result.count = len(matching)
        result.answer = f"{len(matching)} {label} value(s) have {phrase} {threshold} records."
        if matching:
            result.answer += "\n" + _format_counts(matching)
    elif intent is QueryIntent.DISTRIBUTION:
        result.distribution = dist.distribution
        result.count = dist.unique_values
        result.answer = (
            f"Distribution of {label} across {dist.total_records} records "
            f"({dist.unique_values} unique values):\n" + _format_counts(dist.distribution)
        )
    elif intent is QueryIntent.TOP_N:
        limit = extract_number(query) or top_n
        result.distribution = dist.distribution[:limit]
        result.count = len(result.distribution)
        result.answer = f"Top {len(result.distribution)} {label} values by record count:\n" + _format_counts(result.distribution)
    elif intent is QueryIntent.COUNT:
        result.count = dist.unique_values
        result.answer = f"There are {dist.unique_values} unique {label} values across {dist.total_records} records."
    elif intent is QueryIntent.LIST:
        result.values = unique_values(rows, key)
        result.count = len(result.values)
        result.answer = f"{len(result.values)} unique {label} values: " + ", ".join(result.values)
    else:
        result.resolved = False
        result.answer = (
            f"Could not determine what to compute for {label}. "
            "Ask for a count, a list, a distribution, the top values or a threshold."
        )
    return result
