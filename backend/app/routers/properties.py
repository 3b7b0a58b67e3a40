"""Property CRUD API endpoints.

Every endpoint works against whichever store the application started with
(``app.state.store``); none of them know which backend is active.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from yieldbook.exceptions import StoreError
from yieldbook.models.property import Property, PropertyCreate, PropertyPage, PropertyUpdate
from yieldbook.query import parse_query
from yieldbook.storage import PropertyStore

router = APIRouter()
logger = logging.getLogger(__name__)


def get_store(request: Request) -> PropertyStore:
    """Dependency returning the process-wide property store."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Property store not initialized")
    return store


@router.post("", response_model=Property, status_code=201)
async def create_property(
    payload: PropertyCreate,
    store: PropertyStore = Depends(get_store),
) -> Property:
    """Create a property."""
    try:
        record = await store.create(payload)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to create property: {e.message}")

    logger.info(f"Created property {record.id} ({record.location})")
    return record


@router.get("", response_model=PropertyPage)
async def list_properties(
    q: Optional[str] = Query(default=None, description="Case-insensitive location substring"),
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    min_yield: Optional[str] = Query(default=None, alias="minYield"),
    max_yield: Optional[str] = Query(default=None, alias="maxYield"),
    sort_by: Optional[str] = Query(
        default=None,
        alias="sortBy",
        description="price, location, rentalYield or createdAt (default)",
    ),
    order: Optional[str] = Query(default=None, description="asc or desc (default)"),
    page: Optional[str] = Query(default=None, description="Page number, default 1"),
    page_size: Optional[str] = Query(
        default=None, alias="pageSize", description="Page size, default 20, max 100"
    ),
    store: PropertyStore = Depends(get_store),
) -> PropertyPage:
    """List properties with filtering, sorting and pagination.

    Malformed numbers are ignored rather than rejected.
    """
    spec = parse_query(
        q=q,
        min_price=min_price,
        max_price=max_price,
        min_yield=min_yield,
        max_yield=max_yield,
        sort_by=sort_by,
        order=order,
        page=page,
        page_size=page_size,
    )
    try:
        return await store.query(spec)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to list properties: {e.message}")


@router.put("/{property_id}", response_model=Property)
async def update_property(
    property_id: str,
    payload: PropertyUpdate,
    store: PropertyStore = Depends(get_store),
) -> Property:
    """Replace a property's price, location and rental yield."""
    try:
        record = await store.update(property_id, payload)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to update property: {e.message}")

    if record is None:
        raise HTTPException(status_code=404, detail="Property not found")

    logger.info(f"Updated property {property_id}")
    return record


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    store: PropertyStore = Depends(get_store),
) -> dict:
    """Delete a property."""
    try:
        deleted = await store.delete(property_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete property: {e.message}")

    if not deleted:
        raise HTTPException(status_code=404, detail="Property not found")

    logger.info(f"Deleted property {property_id}")
    return {"ok": True}
