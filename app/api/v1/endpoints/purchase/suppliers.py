from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.purchase.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    SupplierPriceUpsert,
    SupplierPriceResponse,
)
from app.services.purchase.supplier_service import SupplierService

router = APIRouter()

@router.post("/", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_data: SupplierCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Create new supplier"""
    service = SupplierService(session)
    return await service.create_supplier(supplier_data, current_user.id)

@router.get("/", response_model=PaginatedResponse[SupplierResponse])
async def get_suppliers(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    """Get suppliers with pagination"""
    service = SupplierService(session)
    return await service.get_suppliers(page_index, page_size, search, is_active)

@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = SupplierService(session)
    return await service.get_supplier(supplier_id)

@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    supplier_data: SupplierUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    service = SupplierService(session)
    return await service.update_supplier(supplier_id, supplier_data, current_user.id)

@router.put("/{supplier_id}/prices", response_model=SupplierPriceResponse)
async def upsert_supplier_price(
    supplier_id: int,
    price_data: SupplierPriceUpsert,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Create or replace the supplier's price for a product"""
    service = SupplierService(session)
    return await service.upsert_price(supplier_id, price_data, current_user.id)

@router.get("/{supplier_id}/prices", response_model=PaginatedResponse[SupplierPriceResponse])
async def get_supplier_prices(
    supplier_id: int,
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = SupplierService(session)
    return await service.get_prices(supplier_id, page_index, page_size)
