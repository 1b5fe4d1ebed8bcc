import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import and_, func, or_

from app.models.inventory.category import Category
from app.models.inventory.inventory_record import InventoryRecord
from app.models.inventory.product import Product
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.schemas.inventory.product import ProductCreate, ProductUpdate
from app.core.exceptions import NotFoundError, ValidationError, ConflictError

logger = logging.getLogger(__name__)

class ProductService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _validate_category(self, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        category = await self.db.execute(
            select(Category.id).where(
                and_(Category.id == category_id, Category.is_active == True, Category.is_deleted == False)
            )
        )
        if category.first() is None:
            raise ValidationError(f"Category {category_id} not found or inactive")

    async def _sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        conditions = [Product.sku == sku]
        if exclude_id is not None:
            conditions.append(Product.id != exclude_id)
        existing = await self.db.execute(select(Product.id).where(and_(*conditions)))
        return existing.first() is not None

    async def _is_referenced(self, product_id: int) -> bool:
        """True once inventory or an order line points at the product"""
        inventory = await self.db.execute(
            select(InventoryRecord.id).where(InventoryRecord.product_id == product_id).limit(1)
        )
        if inventory.first() is not None:
            return True
        lines = await self.db.execute(
            select(PurchaseOrderItem.id).where(PurchaseOrderItem.product_id == product_id).limit(1)
        )
        return lines.first() is not None

    async def create_product(self, product_data: ProductCreate, current_user_id: int) -> Product:
        await self._validate_category(product_data.category_id)
        if await self._sku_taken(product_data.sku):
            raise ConflictError(f"Product with SKU {product_data.sku} already exists")

        product = Product(
            **product_data.model_dump(),
            created_by=current_user_id
        )
        self.db.add(product)
        await self.db.commit()

        logger.info(f"Product {product.sku} created by user {current_user_id}")
        return await self.get_product_by_id(product.id)

    async def get_product_by_id(self, product_id: int) -> Product:
        result = await self.db.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(and_(Product.id == product_id, Product.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    async def get_product_by_sku(self, sku: str) -> Product:
        result = await self.db.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(and_(Product.sku == sku.strip().upper(), Product.is_deleted == False))
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError(f"Product {sku} not found")
        return product

    async def get_products(
        self,
        page_index: int = 1,
        page_size: int = 100,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Get products with pagination and filters"""
        query = select(Product).options(selectinload(Product.category)).where(Product.is_deleted == False)

        if search:
            query = query.where(
                or_(
                    Product.name.ilike(f"%{search}%"),
                    Product.sku.ilike(f"%{search}%"),
                    Product.description.ilike(f"%{search}%")
                )
            )
        if category_id is not None:
            query = query.where(Product.category_id == category_id)
        if is_active is not None:
            query = query.where(Product.is_active == is_active)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        skip = (page_index - 1) * page_size
        result = await self.db.execute(query.order_by(Product.sku).offset(skip).limit(page_size))
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all()
        }

    async def update_product(self, product_id: int, product_data: ProductUpdate, current_user_id: int) -> Product:
        product = await self.get_product_by_id(product_id)
        update_data = product_data.model_dump(exclude_unset=True)

        new_sku = update_data.get("sku")
        if new_sku and new_sku != product.sku:
            if await self._is_referenced(product_id):
                raise ConflictError(
                    f"SKU of product {product.sku} cannot change once it has inventory or order lines"
                )
            if await self._sku_taken(new_sku, exclude_id=product_id):
                raise ConflictError(f"Product with SKU {new_sku} already exists")

        if "category_id" in update_data:
            await self._validate_category(update_data["category_id"])

        for field, value in update_data.items():
            setattr(product, field, value)
        product.updated_by = current_user_id

        await self.db.commit()
        logger.info(f"Product {product.sku} updated by user {current_user_id}")
        return await self.get_product_by_id(product_id)
