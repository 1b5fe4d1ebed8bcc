from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.organization.warehouse import WarehouseCreate, WarehouseUpdate, WarehouseResponse
from app.services.organization.warehouse_service import WarehouseService

router = APIRouter()

@router.post("/", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    warehouse_data: WarehouseCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Create new warehouse"""
    service = WarehouseService(session)
    return await service.create_warehouse(warehouse_data, current_user.id)

@router.get("/", response_model=PaginatedResponse[WarehouseResponse])
async def get_warehouses(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    """Get warehouses with pagination"""
    service = WarehouseService(session)
    return await service.get_warehouses(page_index, page_size, search, is_active)

@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(
    warehouse_id: int,
    session: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = WarehouseService(session)
    return await service.get_warehouse(warehouse_id)

@router.put("/{warehouse_id}", response_model=WarehouseResponse)
async def update_warehouse(
    warehouse_id: int,
    warehouse_data: WarehouseUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    service = WarehouseService(session)
    return await service.update_warehouse(warehouse_id, warehouse_data, current_user.id)
