import logging
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_user, get_permission_checker_dependency, require_permission
from app.auth.permissions import PermissionChecker
from app.models.shared.enums import PurchaseOrderStatus
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.purchase.purchase_order_schema import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderResponse,
    PurchaseOrderStatusUpdate,
    PurchaseOrderSummary,
    ReceiveRequest,
)
from app.services.purchase.purchase_order_service import PurchaseOrderService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    po_data: PurchaseOrderCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency)
):
    """Create a DRAFT purchase order with its items"""
    try:
        po_service = PurchaseOrderService(session)
        return await po_service.create_purchase_order(po_data, current_user.id, checker)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating purchase order: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create purchase order"
        )

@router.get("/", response_model=PaginatedResponse[PurchaseOrderResponse])
async def get_purchase_orders(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    status: Optional[PurchaseOrderStatus] = Query(None),
    supplier_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("purchase_order", "read"))
):
    """Get purchase orders with filters"""
    po_service = PurchaseOrderService(session)
    return await po_service.get_purchase_orders(
        page_index=page_index,
        page_size=page_size,
        status=status,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        search=search
    )

@router.get("/summary", response_model=PurchaseOrderSummary)
async def get_po_summary(
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("purchase_order", "read"))
):
    """Counts by status plus open value, overdue and due-today orders"""
    po_service = PurchaseOrderService(session)
    return await po_service.get_po_summary()

@router.get("/number/{po_number}", response_model=PurchaseOrderResponse)
async def get_purchase_order_by_number(
    po_number: str,
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("purchase_order", "read"))
):
    po_service = PurchaseOrderService(session)
    return await po_service.get_by_po_number(po_number)

@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("purchase_order", "read"))
):
    """Get purchase order by ID"""
    po_service = PurchaseOrderService(session)
    return await po_service.get_purchase_order(po_id)

@router.put("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: int,
    po_data: PurchaseOrderUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency)
):
    """Edit a DRAFT purchase order"""
    po_service = PurchaseOrderService(session)
    return await po_service.update_purchase_order(po_id, po_data, current_user.id, checker)

@router.patch("/{po_id}/status", response_model=PurchaseOrderResponse)
async def update_purchase_order_status(
    po_id: int,
    status_data: PurchaseOrderStatusUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency)
):
    """Move a purchase order to its next status"""
    po_service = PurchaseOrderService(session)
    return await po_service.transition(
        po_id, status_data.status, current_user.id, checker, notes=status_data.notes
    )

@router.post("/{po_id}/receive", response_model=PurchaseOrderResponse)
async def receive_purchase_order(
    po_id: int,
    receive_data: ReceiveRequest,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency)
):
    """Receive goods against an ORDERED or PARTIALLY_RECEIVED purchase order"""
    try:
        po_service = PurchaseOrderService(session)
        return await po_service.receive(
            po_id,
            receive_data.received_items,
            current_user.id,
            checker,
            receipt_reference=receive_data.receipt_reference
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error receiving purchase order {po_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to receive purchase order"
        )

@router.post("/{po_id}/close", response_model=PurchaseOrderResponse)
async def close_purchase_order(
    po_id: int,
    notes: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency)
):
    """Close a FULLY_RECEIVED or CANCELLED purchase order"""
    po_service = PurchaseOrderService(session)
    return await po_service.close(po_id, current_user.id, checker, notes=notes)
