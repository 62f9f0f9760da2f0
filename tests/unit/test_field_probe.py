"""
Unit tests for field existence probing.
"""
import pytest

from ship_assistant.schemas.records import SourceTable
from ship_assistant.services.field_probe import (
    FieldPresence, field_exists, first_present_field, probe_field, probe_row
)


def test_first_present_field_respects_candidate_order():
    row = {"online_status": "ONLINE", "online__at_once_": "ONLINE"}
    candidates = ("online__controller_", "online__at_once_", "online_status")

    assert first_present_field(row, candidates) == "online__at_once_"
    assert first_present_field(row, ("missing",)) is None
    assert first_present_field(None, candidates) is None


def test_probe_row_without_sample_is_unknown():
    result = probe_row(None, "inside_cabin")

    assert result.presence is FieldPresence.UNKNOWN
    assert not result.exists


@pytest.mark.asyncio
async def test_probe_present_field(postgrest, store, device_row):
    postgrest.add_table(SourceTable.WIFI, [device_row("W1", online_field="online_status")])

    result = await probe_field(store, SourceTable.WIFI, ["online__controller_", "online_status"])

    assert result.presence is FieldPresence.PRESENT
    assert result.field == "online_status"
    assert len(postgrest.requests_for(SourceTable.WIFI)) == 1
    assert postgrest.requests_for(SourceTable.WIFI)[0].url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_probe_absent_field(postgrest, store, device_row):
    postgrest.add_table(SourceTable.CABIN_SWITCH, [{"cabin": "10128", "area_type": "crew"}])

    result = await probe_field(store, SourceTable.CABIN_SWITCH, "inside_cabin")

    assert result.presence is FieldPresence.ABSENT
    assert await field_exists(store, SourceTable.CABIN_SWITCH, "inside_cabin") is False
    assert await field_exists(store, SourceTable.CABIN_SWITCH, "cabin") is True


@pytest.mark.asyncio
async def test_probe_empty_table_is_unknown(postgrest, store):
    postgrest.add_table(SourceTable.TV, [], columns=["inside_cabin"])

    result = await probe_field(store, SourceTable.TV, "inside_cabin")

    assert result.presence is FieldPresence.UNKNOWN
    assert await field_exists(store, SourceTable.TV, "inside_cabin") is False


@pytest.mark.asyncio
async def test_probe_failed_sample_is_unknown(postgrest, store, device_row):
    postgrest.add_table(SourceTable.TV, [device_row("T1")])
    postgrest.fail_when = lambda request: True

    result = await probe_field(store, SourceTable.TV, "inside_cabin")

    assert result.presence is FieldPresence.UNKNOWN
