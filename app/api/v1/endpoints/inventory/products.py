from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.schemas.inventory.product import ProductCreate, ProductUpdate, ProductResponse
from app.services.inventory.product_service import ProductService

router = APIRouter()

@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Create a new product"""
    service = ProductService(db)
    return await service.create_product(product_data, current_user.id)

@router.get("/", response_model=PaginatedResponse[ProductResponse])
async def get_products(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    """Get products with search and filters"""
    service = ProductService(db)
    return await service.get_products(
        page_index=page_index,
        page_size=page_size,
        search=search,
        category_id=category_id,
        is_active=is_active
    )

@router.get("/sku/{sku}", response_model=ProductResponse)
async def get_product_by_sku(
    sku: str,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = ProductService(db)
    return await service.get_product_by_sku(sku)

@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("catalog", "read"))
):
    service = ProductService(db)
    return await service.get_product_by_id(product_id)

@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("catalog", "write"))
):
    """Update product; the SKU is frozen once stock or orders reference it"""
    service = ProductService(db)
    return await service.update_product(product_id, product_data, current_user.id)
