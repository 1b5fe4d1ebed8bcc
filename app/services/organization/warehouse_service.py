from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from fastapi import HTTPException
import logging

from app.models.organization.warehouse import Warehouse
from app.schemas.organization.warehouse import WarehouseCreate, WarehouseUpdate
from app.core.exceptions import NotFoundError, ConflictError, wrap_unexpected

logger = logging.getLogger(__name__)

class WarehouseService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_warehouse(self, warehouse_data: WarehouseCreate, current_user_id: int) -> Warehouse:
        """Create new warehouse"""
        try:
            existing = await self.session.execute(
                select(Warehouse.id).where(Warehouse.code == warehouse_data.code)
            )
            if existing.first() is not None:
                raise ConflictError(f"Warehouse code {warehouse_data.code} already exists")

            warehouse = Warehouse(
                **warehouse_data.model_dump(),
                created_by=current_user_id
            )
            self.session.add(warehouse)
            await self.session.commit()
            await self.session.refresh(warehouse)

            logger.info(f"Warehouse created: {warehouse.code} by user {current_user_id}")
            return warehouse

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating warehouse: {str(e)}")
            raise wrap_unexpected(e, "Failed to create warehouse")

    async def get_warehouse(self, warehouse_id: int) -> Warehouse:
        result = await self.session.execute(
            select(Warehouse).where(and_(Warehouse.id == warehouse_id, Warehouse.is_deleted == False))
        )
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")
        return warehouse

    async def get_warehouses(
        self,
        page_index: int = 1,
        page_size: int = 100,
        search: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Get warehouses with pagination"""
        conditions = [Warehouse.is_deleted == False]
        if is_active is not None:
            conditions.append(Warehouse.is_active == is_active)
        if search:
            conditions.append(
                or_(
                    Warehouse.name.ilike(f"%{search}%"),
                    Warehouse.code.ilike(f"%{search}%"),
                    Warehouse.city.ilike(f"%{search}%")
                )
            )

        total = (await self.session.execute(
            select(func.count(Warehouse.id)).where(and_(*conditions))
        )).scalar() or 0

        result = await self.session.execute(
            select(Warehouse)
            .where(and_(*conditions))
            .order_by(Warehouse.code)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all()
        }

    async def update_warehouse(self, warehouse_id: int, warehouse_data: WarehouseUpdate, current_user_id: int) -> Warehouse:
        """Update warehouse; the code is permanent"""
        try:
            warehouse = await self.get_warehouse(warehouse_id)
            for field, value in warehouse_data.model_dump(exclude_unset=True).items():
                setattr(warehouse, field, value)
            warehouse.updated_by = current_user_id

            await self.session.commit()
            await self.session.refresh(warehouse)
            logger.info(f"Warehouse updated: {warehouse.code} by user {current_user_id}")
            return warehouse

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating warehouse {warehouse_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to update warehouse")
