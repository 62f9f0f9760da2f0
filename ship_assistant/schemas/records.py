"""
Record schemas for the Ship Network Assistant.

This module defines the source-table enumeration and the canonical,
table-agnostic device record shape that every raw row is normalized into.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SourceTable(str, Enum):
    """The six source tables backing the ship inventory."""
    WIFI = "wifi"
    PBX = "pbx"
    TV = "tv"
    CABIN_SWITCH = "cabin_switch"
    FIELD_CABLES = "field_cables"
    EXTRACTED = "extracted"

    @classmethod
    def parse(cls, value: str, table_prefix: str = "") -> Optional["SourceTable"]:
        """Resolve a source tag or a physical table name to a SourceTable, or None."""
        if value is None:
            return None
        name = value.strip().lower()
        if table_prefix and name.startswith(table_prefix):
            name = name[len(table_prefix):]
        for table in cls:
            if table.value == name:
                return table
        return None


# Systems that carry devices assigned to cabins
DEVICE_SYSTEMS = (SourceTable.WIFI, SourceTable.PBX, SourceTable.TV, SourceTable.CABIN_SWITCH)

# Systems whose outlets appear on the cabin cable list
CABIN_LIST_SYSTEMS = (SourceTable.PBX, SourceTable.TV, SourceTable.WIFI)


class CanonicalRecord(BaseModel):
    """Normalized device record. Every field is a string, empty when the source lacks it."""
    cable_id: str = ""
    deck: str = ""
    fire_zone: str = ""
    frame: str = ""
    side: str = ""
    cabin: str = ""
    cabin_type: str = ""
    device_name: str = ""
    device_type: str = ""
    mac_address: str = ""
    inside_cabin: str = ""
    user: str = ""
    remarks: str = ""
    origin_switch: str = ""
    rdp: str = ""
    blade_port: str = ""
    system: str = ""
    area: str = ""
    location: str = ""
    installed: str = ""
    online_status: str = ""
    source_table: str = Field("", description="Source tag of the table the record came from")
