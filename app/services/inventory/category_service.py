from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import and_, func, or_

from app.models.inventory.category import Category
from app.models.inventory.product import Product
from app.schemas.inventory.category import CategoryCreate, CategoryUpdate
from app.core.exceptions import NotFoundError, ConflictError

class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        conditions = [func.lower(Category.name) == name.lower(), Category.is_deleted == False]
        if exclude_id is not None:
            conditions.append(Category.id != exclude_id)
        existing = await self.db.execute(select(Category.id).where(and_(*conditions)))
        return existing.first() is not None

    async def create_category(self, category_data: CategoryCreate, current_user_id: int) -> Category:
        if await self._name_taken(category_data.name):
            raise ConflictError(f"Category '{category_data.name}' already exists")

        category = Category(
            **category_data.model_dump(),
            created_by=current_user_id
        )
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def get_category_by_id(self, category_id: int) -> Category:
        result = await self.db.execute(
            select(Category).where(and_(Category.id == category_id, Category.is_deleted == False))
        )
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def get_categories(self,
                             page_index: int = 1,
                             page_size: int = 100,
                             search: Optional[str] = None,
                             is_active: Optional[bool] = None) -> Dict[str, Any]:
        """Get categories with pagination"""
        query = select(Category).where(Category.is_deleted == False)
        if is_active is not None:
            query = query.where(Category.is_active == is_active)
        if search:
            query = query.where(
                or_(
                    Category.name.ilike(f"%{search}%"),
                    Category.description.ilike(f"%{search}%")
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        skip = (page_index - 1) * page_size
        result = await self.db.execute(query.order_by(Category.name).offset(skip).limit(page_size))
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all()
        }

    async def update_category(self, category_id: int, category_data: CategoryUpdate, current_user_id: int) -> Category:
        category = await self.get_category_by_id(category_id)

        if category_data.name and category_data.name != category.name:
            if await self._name_taken(category_data.name, exclude_id=category_id):
                raise ConflictError(f"Category '{category_data.name}' already exists")

        for field, value in category_data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        category.updated_by = current_user_id

        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int, current_user_id: int) -> bool:
        category = await self.get_category_by_id(category_id)

        products = await self.db.execute(
            select(Product.id).where(
                and_(Product.category_id == category_id, Product.is_deleted == False)
            ).limit(1)
        )
        if products.first() is not None:
            raise ConflictError("Cannot delete category with associated products")

        # Soft delete
        category.is_active = False
        category.is_deleted = True
        category.updated_by = current_user_id
        await self.db.commit()
        return True
