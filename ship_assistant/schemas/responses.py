"""
API response schemas for the Ship Network Assistant.

This module defines the Pydantic models for aggregates and API responses.
"""
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field

from ship_assistant.schemas.records import CanonicalRecord


class CountsByUserType(BaseModel):
    """Crew/pax counts split into the four cabin/public quadrants plus rollups."""
    crew: int = 0
    pax: int = 0
    total: int = 0
    cabin_crew: int = 0
    cabin_pax: int = 0
    public_crew: int = 0
    public_pax: int = 0


class ServiceStatus(BaseModel):
    """Online/offline/total breakdown for one system."""
    online: CountsByUserType = Field(default_factory=CountsByUserType)
    offline: CountsByUserType = Field(default_factory=CountsByUserType)
    total: CountsByUserType = Field(default_factory=CountsByUserType)
    record_count: int = Field(0, description="Raw number of rows in the table")
    status_unknown: int = Field(
        0,
        description="Crew/pax records counted neither online nor offline by an explicit OFFLINE count"
    )


class ShipTotals(BaseModel):
    """Ship-wide rollup across every system."""
    total: int = 0
    online: int = 0
    offline: int = 0


class DashboardResponse(BaseModel):
    """Response model for the /dashboard endpoint."""
    systems: Dict[str, ServiceStatus]
    ship_totals: ShipTotals
    unique_cabins: int = 0
    last_updated: Optional[str] = Field(None, description="Most recent update/create timestamp across tables")


class TableOverview(BaseModel):
    """Summary of one source table."""
    table_name: str
    physical_name: str
    total_count: int = 0
    fields: List[str] = Field(default_factory=list)
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list)
    last_updated: Optional[str] = None


class CabinDistribution(BaseModel):
    """Devices-per-cabin histogram for one system."""
    system: str
    total_devices: int = Field(0, description="Records carrying a valid cabin identifier")
    total_cabins: int = 0
    single: int = 0
    double: int = 0
    triple: int = 0
    four_or_more: int = 0
    cabin_counts: Dict[str, int] = Field(default_factory=dict)
    max_count: int = 0


class CabinOccupancy(BaseModel):
    """Cabins split by the user class of the devices they hold."""
    crew_only: List[str] = Field(default_factory=list)
    pax_only: List[str] = Field(default_factory=list)
    mixed: List[str] = Field(default_factory=list)


class ValueCount(BaseModel):
    value: str
    count: int


class FieldDistribution(BaseModel):
    """Per-value counts for one field over a record set."""
    field: str
    total_records: int = 0
    unique_values: int = 0
    distribution: List[ValueCount] = Field(default_factory=list)


class FieldQueryResult(BaseModel):
    """Answer produced by the field distribution engine for one free-text query."""
    query: str
    intent: str
    resolved: bool = True
    field: Optional[str] = None
    answer: str
    count: Optional[int] = None
    threshold: Optional[int] = None
    values: List[str] = Field(default_factory=list)
    distribution: List[ValueCount] = Field(default_factory=list)


class CableListEntry(CanonicalRecord):
    """Canonical record annotated with its current offline state."""
    offline: bool = False


class CableListResponse(BaseModel):
    """Response model for the cable list endpoints."""
    rows: List[CableListEntry] = Field(default_factory=list)
    total: int = 0
    offline: int = 0


class ChatResponse(BaseModel):
    """Response model for the /chat endpoint."""
    answer: str = Field(..., description="Answer to the query")
    route: str = Field(..., description="Which analysis answered the query")
    system: Optional[str] = Field(None, description="System the answer is scoped to, if any")
    data: Optional[Dict[str, Any]] = Field(None, description="Structured aggregate behind the answer")
    rows: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Tabular result rows, when the answer is a list"
    )
