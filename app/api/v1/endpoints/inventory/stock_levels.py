from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.inventory.inventory_record import (
    InventoryRecordResponse,
    ReservationRequest,
    ReconciliationResponse,
)
from app.services.inventory.inventory_ledger import InventoryLedger

router = APIRouter()

@router.get("/", response_model=PaginatedResponse[InventoryRecordResponse])
async def get_stock_levels(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    warehouse_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    low_stock_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("inventory", "read"))
):
    """Get inventory records with optional filters"""
    ledger = InventoryLedger(db)
    return await ledger.list_records(
        page_index=page_index,
        page_size=page_size,
        warehouse_id=warehouse_id,
        product_id=product_id,
        low_stock_only=low_stock_only
    )

@router.get("/low-stock", response_model=PaginatedResponse[InventoryRecordResponse])
async def get_low_stock(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    warehouse_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("inventory", "read"))
):
    """Records at or below their reorder point, most urgent first"""
    ledger = InventoryLedger(db)
    return await ledger.list_records(
        page_index=page_index,
        page_size=page_size,
        warehouse_id=warehouse_id,
        product_id=product_id,
        low_stock_only=True
    )

@router.post("/reserve", response_model=InventoryRecordResponse)
async def reserve_stock(
    reservation: ReservationRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("inventory", "reserve"))
):
    ledger = InventoryLedger(db)
    return await ledger.reserve(
        reservation.product_id, reservation.warehouse_id, reservation.quantity, actor_id=current_user.id
    )

@router.post("/release", response_model=InventoryRecordResponse)
async def release_stock(
    reservation: ReservationRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("inventory", "reserve"))
):
    ledger = InventoryLedger(db)
    return await ledger.release(
        reservation.product_id, reservation.warehouse_id, reservation.quantity, actor_id=current_user.id
    )

@router.get("/product/{product_id}/warehouse/{warehouse_id}", response_model=InventoryRecordResponse)
async def get_stock_level(
    product_id: int,
    warehouse_id: int,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("inventory", "read"))
):
    """Current quantities for a product in a warehouse"""
    ledger = InventoryLedger(db)
    return await ledger.get_record(product_id, warehouse_id)

@router.get("/product/{product_id}/warehouse/{warehouse_id}/reconcile", response_model=ReconciliationResponse)
async def reconcile_stock_level(
    product_id: int,
    warehouse_id: int,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("inventory", "read"))
):
    """Replay movement history and compare it with the stored on-hand quantity"""
    ledger = InventoryLedger(db)
    return await ledger.reconcile(product_id, warehouse_id)
