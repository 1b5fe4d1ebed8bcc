from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.models.shared.enums import StockMovementType, StockReferenceType
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.inventory.inventory_record import (
    StockMovementCreate,
    StockMovementResponse,
    InventoryRecordResponse,
)
from app.services.inventory.inventory_ledger import InventoryLedger

router = APIRouter()

@router.post("/", response_model=InventoryRecordResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_movement(
    movement_data: StockMovementCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("inventory", "move"))
):
    """Apply a stock movement and return the updated record"""
    ledger = InventoryLedger(db)
    return await ledger.apply_movement(
        product_id=movement_data.product_id,
        warehouse_id=movement_data.warehouse_id,
        movement_type=movement_data.type,
        quantity=movement_data.quantity,
        reference_type=movement_data.reference_type,
        reference_id=movement_data.reference_id,
        notes=movement_data.notes,
        actor_id=current_user.id
    )

@router.get("/", response_model=PaginatedResponse[StockMovementResponse])
async def get_stock_movements(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    movement_type: Optional[StockMovementType] = Query(None),
    reference_type: Optional[StockReferenceType] = Query(None),
    reference_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("inventory", "read"))
):
    """Get stock movement history, newest first"""
    ledger = InventoryLedger(db)
    return await ledger.list_movements(
        page_index=page_index,
        page_size=page_size,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        reference_type=reference_type,
        reference_id=reference_id
    )
