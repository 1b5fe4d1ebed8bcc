from typing import Optional, Dict, Any
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from sqlalchemy.orm import selectinload
from fastapi import HTTPException
import logging

from app.models.inventory.product import Product
from app.models.purchase.product_supplier import ProductSupplier
from app.models.purchase.supplier import Supplier
from app.schemas.purchase.supplier import SupplierCreate, SupplierUpdate, SupplierPriceUpsert
from app.core.exceptions import NotFoundError, ConflictError, wrap_unexpected

logger = logging.getLogger(__name__)

class SupplierService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_supplier(self, supplier_data: SupplierCreate, current_user_id: int) -> Supplier:
        """Create new supplier"""
        try:
            existing = await self.session.execute(
                select(Supplier.id).where(Supplier.supplier_code == supplier_data.supplier_code)
            )
            if existing.first() is not None:
                raise ConflictError(f"Supplier code {supplier_data.supplier_code} already exists")

            supplier = Supplier(
                **supplier_data.model_dump(),
                created_by=current_user_id
            )
            self.session.add(supplier)
            await self.session.commit()
            await self.session.refresh(supplier)

            logger.info(f"Supplier created: {supplier.name} by user {current_user_id}")
            return supplier

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating supplier: {str(e)}")
            raise wrap_unexpected(e, "Failed to create supplier")

    async def get_supplier(self, supplier_id: int) -> Supplier:
        result = await self.session.execute(
            select(Supplier).where(and_(Supplier.id == supplier_id, Supplier.is_deleted == False))
        )
        supplier = result.scalar_one_or_none()
        if not supplier:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        return supplier

    async def get_suppliers(
        self,
        page_index: int = 1,
        page_size: int = 100,
        search: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Get suppliers with pagination"""
        conditions = [Supplier.is_deleted == False]
        if is_active is not None:
            conditions.append(Supplier.is_active == is_active)
        if search:
            conditions.append(
                or_(
                    Supplier.name.ilike(f"%{search}%"),
                    Supplier.supplier_code.ilike(f"%{search}%"),
                    Supplier.contact_person.ilike(f"%{search}%")
                )
            )

        total = (await self.session.execute(
            select(func.count(Supplier.id)).where(and_(*conditions))
        )).scalar() or 0

        result = await self.session.execute(
            select(Supplier)
            .where(and_(*conditions))
            .order_by(Supplier.name)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all()
        }

    async def update_supplier(self, supplier_id: int, supplier_data: SupplierUpdate, current_user_id: int) -> Supplier:
        """Update supplier"""
        try:
            supplier = await self.get_supplier(supplier_id)
            for field, value in supplier_data.model_dump(exclude_unset=True).items():
                setattr(supplier, field, value)
            supplier.updated_by = current_user_id

            await self.session.commit()
            await self.session.refresh(supplier)
            logger.info(f"Supplier updated: {supplier.name} by user {current_user_id}")
            return supplier

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating supplier {supplier_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to update supplier")

    # Price list

    async def upsert_price(self, supplier_id: int, price_data: SupplierPriceUpsert, current_user_id: int) -> ProductSupplier:
        """Create or replace the supplier's quoted price for a product"""
        try:
            await self.get_supplier(supplier_id)
            product = await self.session.execute(
                select(Product.id).where(and_(Product.id == price_data.product_id, Product.is_deleted == False))
            )
            if product.first() is None:
                raise NotFoundError(f"Product {price_data.product_id} not found")

            result = await self.session.execute(
                select(ProductSupplier).where(
                    and_(
                        ProductSupplier.supplier_id == supplier_id,
                        ProductSupplier.product_id == price_data.product_id
                    )
                )
            )
            price = result.scalar_one_or_none()
            if price is None:
                price = ProductSupplier(
                    supplier_id=supplier_id,
                    product_id=price_data.product_id,
                    created_by=current_user_id
                )
                self.session.add(price)

            price.unit_cost = price_data.unit_cost
            price.lead_time_days = price_data.lead_time_days
            price.supplier_product_code = price_data.supplier_product_code
            price.last_quoted_at = datetime.now(timezone.utc)
            price.is_deleted = False
            price.updated_by = current_user_id

            await self.session.commit()
            logger.info(
                f"Supplier {supplier_id} quoted {price_data.unit_cost} for product {price_data.product_id}"
            )
            return await self._load_price(price.id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error saving supplier price: {str(e)}")
            raise wrap_unexpected(e, "Failed to save supplier price")

    async def _load_price(self, price_id: int) -> ProductSupplier:
        result = await self.session.execute(
            select(ProductSupplier)
            .options(selectinload(ProductSupplier.product))
            .where(ProductSupplier.id == price_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_prices(self, supplier_id: int, page_index: int = 1, page_size: int = 100) -> Dict[str, Any]:
        await self.get_supplier(supplier_id)
        conditions = and_(ProductSupplier.supplier_id == supplier_id, ProductSupplier.is_deleted == False)

        total = (await self.session.execute(
            select(func.count(ProductSupplier.id)).where(conditions)
        )).scalar() or 0
        result = await self.session.execute(
            select(ProductSupplier)
            .options(selectinload(ProductSupplier.product))
            .where(conditions)
            .order_by(ProductSupplier.product_id)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all()
        }
