"""
Unit tests for cabin distribution analysis.
"""
from ship_assistant.schemas.records import CanonicalRecord, SourceTable
from ship_assistant.services.cabin_distribution import (
    analyze_cabin_distribution, cabins_with_exact_count, cabins_with_more_than,
    classify_cabin_occupancy, group_by_cabin, sort_cabin_ids
)


def _records(cabin_counts, user="crew"):
    records = []
    for cabin, count in cabin_counts.items():
        records.extend(
            CanonicalRecord(cable_id=f"{cabin}-{i}", cabin=cabin, user=user, source_table="pbx")
            for i in range(count)
        )
    return records


def test_histogram_buckets():
    records = _records({"10": 1, "11": 2, "12": 2, "13": 5})

    distribution = analyze_cabin_distribution(records, SourceTable.PBX)

    assert (distribution.single, distribution.double, distribution.triple, distribution.four_or_more) == (1, 2, 0, 1)
    assert distribution.cabin_counts == {"10": 1, "11": 2, "12": 2, "13": 5}
    assert distribution.max_count == 5
    assert distribution.total_cabins == 4
    assert distribution.total_devices == 10
    assert distribution.system == "pbx"
    assert cabins_with_exact_count(records, 2) == ["11", "12"]


def test_bucket_weights_never_exceed_valid_devices():
    records = _records({"1": 1, "2": 3, "3": 7}) + _records({"-": 4, "": 2})

    d = analyze_cabin_distribution(records, "tv")

    weighted = d.single * 1 + d.double * 2 + d.triple * 3 + sum(c for c in d.cabin_counts.values() if c >= 4)
    assert weighted == d.total_devices == 11


def test_placeholder_cabins_are_not_grouped():
    records = _records({"0128": 1, "-": 1, "undefined": 2, "null": 1, "": 3})

    groups = group_by_cabin(records)

    assert list(groups) == ["0128"]
    assert len(groups["0128"]) == 1


def test_cabin_ids_are_stripped_before_grouping():
    records = [CanonicalRecord(cabin="7001"), CanonicalRecord(cabin=" 7001 ")]

    assert analyze_cabin_distribution(records, "wifi").cabin_counts == {"7001": 2}


def test_more_than_query():
    records = _records({"10": 1, "11": 2, "12": 3, "13": 5})

    assert cabins_with_more_than(records, 2) == ["12", "13"]
    assert cabins_with_more_than(records, 5) == []


def test_cabin_ids_sort_numerically_then_lexically():
    assert sort_cabin_ids(["100", "20", "3", "A12", "0128", "B1"]) == ["3", "20", "100", "0128", "A12", "B1"]


def test_empty_record_set():
    distribution = analyze_cabin_distribution([], "pbx")

    assert distribution.total_cabins == 0
    assert distribution.max_count == 0


def test_occupancy_classification():
    records = (
        _records({"10": 2, "11": 2}, user="Crew")
        + _records({"12": 2}, user="PAX")
        + _records({"13": 1}, user="crew")
        + _records({"13": 1}, user="pax")
    )

    all_cabins = classify_cabin_occupancy(records)
    assert all_cabins.crew_only == ["10", "11"]
    assert all_cabins.pax_only == ["12"]
    assert all_cabins.mixed == ["13"]

    exactly_two = classify_cabin_occupancy(records, device_count=2)
    assert exactly_two.crew_only == ["10", "11"]
    assert exactly_two.mixed == ["13"]


def test_unclassified_user_makes_a_cabin_mixed():
    records = _records({"10": 1}, user="crew") + _records({"10": 1}, user="")

    assert classify_cabin_occupancy(records).mixed == ["10"]
