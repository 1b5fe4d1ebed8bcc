from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.inventory.category import CategoryCreate, CategoryUpdate, CategoryResponse
from app.services.inventory.category_service import CategoryService

router = APIRouter()

@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Create a new category"""
    service = CategoryService(db)
    return await service.create_category(category_data, current_user.id)

@router.get("/", response_model=PaginatedResponse[CategoryResponse])
async def get_categories(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    """Get all categories with pagination"""
    service = CategoryService(db)
    return await service.get_categories(page_index, page_size, search, is_active)

@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = CategoryService(db)
    return await service.get_category_by_id(category_id)

@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Update category"""
    service = CategoryService(db)
    return await service.update_category(category_id, category_data, current_user.id)

@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Soft delete a category without products"""
    service = CategoryService(db)
    await service.delete_category(category_id, current_user.id)
    return {"message": "Category deleted successfully"}
