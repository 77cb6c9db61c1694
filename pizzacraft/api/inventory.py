import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from pizzacraft.api.deps import get_stock_monitor, require_admin
from pizzacraft.models.catalog import IngredientCategory
from pizzacraft.schemas.catalog import (
    CatalogItemRequest,
    CatalogItemResponse,
    CatalogItemUpdate,
    StockUpdateRequest,
)
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services import inventory_service
from pizzacraft.services.stock_monitor import StockMonitor

router = APIRouter()
log = logging.getLogger(__name__)


def _dump(items):
    return [CatalogItemResponse.from_item(item).model_dump() for item in items]


@router.get("", response_model=SuccessResponse)
async def list_inventory(category: Optional[IngredientCategory] = None, active: Optional[bool] = None):
    """Catalog listing, optionally filtered by category and active flag."""
    items = await inventory_service.list_items(category, active)
    return SuccessResponse(data=_dump(items))


@router.get("/categorized", response_model=SuccessResponse)
async def categorized_inventory():
    """Orderable ingredients grouped for the pizza builder."""
    grouped = await inventory_service.categorized_items()
    return SuccessResponse(data={category: _dump(items) for category, items in grouped.items()})


@router.get("/low-stock", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def low_stock_inventory():
    items = await inventory_service.low_stock_items()
    return SuccessResponse(data=_dump(items))


@router.get("/summary", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def inventory_summary(monitor: StockMonitor = Depends(get_stock_monitor)):
    return SuccessResponse(data=await monitor.stock_summary())


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse,
             dependencies=[Depends(require_admin)])
async def create_inventory_item(payload: CatalogItemRequest):
    item = await inventory_service.create_item(payload)
    return SuccessResponse(message="Inventory item created successfully",
                           data=CatalogItemResponse.from_item(item).model_dump())


@router.post("/update-stock", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def update_stock(payload: StockUpdateRequest):
    """All-or-nothing stock decrement for a batch of items."""
    await inventory_service.apply_stock_decrements([entry.model_dump() for entry in payload.items])
    return SuccessResponse(message="Stock levels updated successfully")


@router.post("/check-low-stock", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def trigger_low_stock_check(monitor: StockMonitor = Depends(get_stock_monitor)):
    log.info("Manual low stock check triggered")
    result = await monitor.check_low_stock()
    return SuccessResponse(message="Low stock check completed", data=result)


@router.post("/seed", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse,
             dependencies=[Depends(require_admin)])
async def seed_inventory():
    count = await inventory_service.seed_inventory()
    return SuccessResponse(message=f"Seeded {count} inventory items", data={"count": count})


@router.put("/{item_id}", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def update_inventory_item(item_id: UUID, payload: CatalogItemUpdate):
    item = await inventory_service.update_item(item_id, payload)
    return SuccessResponse(message="Inventory item updated successfully",
                           data=CatalogItemResponse.from_item(item).model_dump())


@router.delete("/{item_id}", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def delete_inventory_item(item_id: UUID):
    await inventory_service.delete_item(item_id)
    return SuccessResponse(message="Inventory item deleted successfully")
