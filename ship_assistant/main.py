"""
Main application module for the Ship Network Assistant.

This module defines the FastAPI application, routes, and middleware.
"""
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, Depends, HTTPException, Request, Body, Query
from fastapi.middleware.cors import CORSMiddleware

from ship_assistant.config import load_settings
from ship_assistant.schemas.records import CABIN_LIST_SYSTEMS, DEVICE_SYSTEMS, SourceTable
from ship_assistant.schemas.responses import (
    CabinDistribution, CableListResponse, ChatResponse, DashboardResponse, TableOverview
)
from ship_assistant.services.cabin_distribution import analyze_cabin_distribution
from ship_assistant.services.cable_lists import get_cabin_cables, get_public_cables
from ship_assistant.services.chat_router import answer_chat
from ship_assistant.services.dashboard import get_all_table_overviews, get_dashboard_data, get_table_overview
from ship_assistant.services.normalizer import load_system_records
from ship_assistant.services.store import StoreClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings and open the store client; missing configuration stops start-up."""
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.store = StoreClient.from_settings(settings)
    logger.info("Store client ready for %s (table prefix %r)", settings.store_url, settings.table_prefix)
    try:
        yield
    finally:
        await app.state.store.aclose()


# Create FastAPI app
app = FastAPI(
    title="Ship Network Assistant",
    description="Inventory and connectivity analytics for a ship's onboard networks",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(request: Request) -> StoreClient:
    """Request-scoped handle to the application's store client."""
    return request.app.state.store


def _parse_table(name: str, allowed=tuple(SourceTable)) -> SourceTable:
    table = SourceTable.parse(name)
    if table is None or table not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown table '{name}'. Expected one of: {', '.join(t.value for t in allowed)}"
        )
    return table


@app.get("/ping")
@app.head("/ping")
async def ping():
    """Health check endpoint. Supports both GET and HEAD methods."""
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardResponse)
async def dashboard(store: StoreClient = Depends(get_store)):
    """Per-system status, ship totals, unique cabins and last update time."""
    return await get_dashboard_data(store)


@app.get("/analysis", response_model=Union[TableOverview, List[TableOverview]])
async def analysis(
    table: Optional[str] = Query(None, description="Source tag or physical table name"),
    store: StoreClient = Depends(get_store),
):
    """
    Table overview.

    Args:
        table: Optional table; all six tables are summarized when omitted
        store: Store client

    Returns:
        One TableOverview, or a list of all of them
    """
    if table is None:
        return await get_all_table_overviews(store)
    source = SourceTable.parse(table, store.table_prefix)
    if source is None:
        raise HTTPException(status_code=400, detail=f"Unknown table '{table}'")
    return await get_table_overview(store, source)


@app.get("/cabins/{system}/distribution", response_model=CabinDistribution)
async def cabin_distribution(system: str, store: StoreClient = Depends(get_store)):
    """Devices-per-cabin histogram for one system."""
    source = _parse_table(system, DEVICE_SYSTEMS)
    records = await load_system_records(store, source)
    return analyze_cabin_distribution(records, source)


@app.get("/cables/cabin", response_model=CableListResponse)
async def cabin_cables(
    systems: Optional[str] = Query(None, description="Comma-separated systems, default pbx,tv,wifi"),
    store: StoreClient = Depends(get_store),
):
    """In-cabin cables annotated with their offline state."""
    if systems:
        selected = [_parse_table(name, CABIN_LIST_SYSTEMS) for name in systems.split(",") if name.strip()]
    else:
        selected = list(CABIN_LIST_SYSTEMS)
    return await get_cabin_cables(store, selected)


@app.get("/cables/public", response_model=CableListResponse)
async def public_cables(store: StoreClient = Depends(get_store)):
    """Field cables plus offline public-area outlets."""
    return await get_public_cables(store)


@app.post("/chat", response_model=ChatResponse)
async def chat(
    request: Dict = Body(...),
    store: StoreClient = Depends(get_store),
):
    """
    Answer a free-text question about the ship inventory.

    Args:
        request: Request body containing either 'query' or 'message', and an optional 'system'
        store: Store client

    Returns:
        ChatResponse with the answer and the data behind it
    """
    # Accept either 'query' or 'message' field for compatibility
    query = request.get("query") or request.get("message")
    if not query or not isinstance(query, str):
        raise HTTPException(status_code=400, detail="Missing 'query' or 'message' field")

    try:
        return await answer_chat(store, query, request.get("system"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Error in chat endpoint")
        raise HTTPException(status_code=500, detail=f"{type(e).__name__}: {str(e)}")
