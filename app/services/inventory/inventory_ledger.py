# app/services/inventory/inventory_ledger.py
import logging
import uuid
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, case
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException

from app.core.exceptions import (
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    InsufficientAvailableError,
    DuplicateReferenceError,
    wrap_unexpected,
)
from app.models.inventory.inventory_record import InventoryRecord
from app.models.inventory.product import Product
from app.models.inventory.stock_movement import StockMovement
from app.models.organization.warehouse import Warehouse
from app.models.shared.enums import StockMovementType, StockReferenceType, StockStatus
from app.schemas.inventory.inventory_record import (
    InventoryRecordResponse,
    ReconciliationResponse,
    TransferResponse,
)
from app.schemas.inventory.product import ProductInfo
from app.schemas.organization.warehouse import WarehouseInfo
from app.services.alerts.alert_service import AlertService

logger = logging.getLogger(__name__)

# Direction of each movement type relative to the movement's warehouse
MOVEMENT_SIGN = {
    StockMovementType.IN: 1,
    StockMovementType.ADJUSTMENT: 1,
    StockMovementType.OUT: -1,
    StockMovementType.TRANSFER: -1,
}


def stock_status(available: int, reorder_point: int) -> StockStatus:
    """Single stock status rule shared by every read of the ledger"""
    if available <= 0:
        return StockStatus.OUT_OF_STOCK
    if available <= (reorder_point or 0):
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def record_snapshot(
    record: Optional[InventoryRecord],
    product: Product,
    warehouse: Warehouse,
) -> InventoryRecordResponse:
    on_hand = record.quantity_on_hand if record is not None else 0
    reserved = record.quantity_reserved if record is not None else 0
    available = on_hand - reserved
    return InventoryRecordResponse(
        id=record.id if record is not None else None,
        product_id=product.id,
        warehouse_id=warehouse.id,
        quantity_on_hand=on_hand,
        quantity_reserved=reserved,
        quantity_available=available,
        reorder_point=product.reorder_point,
        stock_status=stock_status(available, product.reorder_point),
        last_updated_at=record.last_updated_at if record is not None else None,
        product=ProductInfo.model_validate(product),
        warehouse=WarehouseInfo.model_validate(warehouse),
    )


def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Unknown {label} '{value}'. Expected one of: {allowed}")


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


class InventoryLedger:
    """
    Owns on-hand and reserved quantities per (product, warehouse) and the
    append-only movement history behind them.

    Mutators lock the inventory row before reading it. With ``commit=True``
    (the default) each call is its own transaction; callers composing a larger
    unit of work pass ``commit=False`` and commit themselves.
    """

    def __init__(self, db: AsyncSession, alert_service: Optional[AlertService] = None):
        self.db = db
        self.alerts = alert_service or AlertService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_product(self, product_id: int, require_active: bool = True) -> Product:
        result = await self.db.execute(
            select(Product).where(and_(Product.id == product_id, Product.is_deleted == False))
        )
        product = result.scalar_one_or_none()
        if not product or (require_active and not product.is_active):
            raise NotFoundError(f"Product {product_id} not found or inactive")
        return product

    async def _get_warehouse(self, warehouse_id: int, require_active: bool = True) -> Warehouse:
        result = await self.db.execute(
            select(Warehouse).where(and_(Warehouse.id == warehouse_id, Warehouse.is_deleted == False))
        )
        warehouse = result.scalar_one_or_none()
        if not warehouse or (require_active and not warehouse.is_active):
            raise NotFoundError(f"Warehouse {warehouse_id} not found or inactive")
        return warehouse

    def _record_query(self, product_id: int, warehouse_id: int):
        return (
            select(InventoryRecord)
            .where(
                and_(
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.warehouse_id == warehouse_id
                )
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    async def lock_record(self, product_id: int, warehouse_id: int, create: bool = True) -> Optional[InventoryRecord]:
        """SELECT ... FOR UPDATE the record, creating the zero row on first use"""
        query = self._record_query(product_id, warehouse_id)
        record = (await self.db.execute(query)).scalar_one_or_none()
        if record is not None or not create:
            return record

        try:
            async with self.db.begin_nested():
                record = InventoryRecord(
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    quantity_on_hand=0,
                    quantity_reserved=0,
                    last_updated_at=datetime.now(timezone.utc),
                )
                self.db.add(record)
                await self.db.flush()
        except IntegrityError:
            # Created concurrently; lock the winner's row instead
            record = (await self.db.execute(query)).scalar_one()
        return record

    async def find_movement(self, reference_type: StockReferenceType, reference_id: str) -> Optional[StockMovement]:
        result = await self.db.execute(
            select(StockMovement).where(
                and_(
                    StockMovement.reference_type == reference_type,
                    StockMovement.reference_id == reference_id
                )
            )
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    async def _apply(
        self,
        product: Product,
        warehouse: Warehouse,
        movement_type: StockMovementType,
        quantity: int,
        reference_type: StockReferenceType,
        reference_id: Optional[str],
        notes: Optional[str],
        actor_id: Optional[int],
    ) -> InventoryRecord:
        record = await self.lock_record(product.id, warehouse.id)

        if reference_id is not None and await self.find_movement(reference_type, reference_id):
            raise DuplicateReferenceError(
                f"Movement {reference_type.value}:{reference_id} was already applied"
            )

        new_on_hand = record.quantity_on_hand + MOVEMENT_SIGN[movement_type] * quantity
        if new_on_hand < 0:
            raise InsufficientStockError(
                f"Cannot remove {quantity} of {product.sku} from {warehouse.code}: "
                f"only {record.quantity_on_hand} on hand"
            )
        if new_on_hand < record.quantity_reserved:
            raise InsufficientAvailableError(
                f"Cannot remove {quantity} of {product.sku} from {warehouse.code}: "
                f"{record.quantity_reserved} of {record.quantity_on_hand} on hand are reserved"
            )

        movement = StockMovement(
            product_id=product.id,
            warehouse_id=warehouse.id,
            movement_type=movement_type,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            moved_at=datetime.now(timezone.utc),
            created_by=actor_id,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(movement)
                await self.db.flush()
        except IntegrityError:
            raise DuplicateReferenceError(
                f"Movement {reference_type.value}:{reference_id} was already applied"
            )

        record.quantity_on_hand = new_on_hand
        record.last_updated_at = datetime.now(timezone.utc)
        record.updated_by = actor_id
        await self.db.flush()

        await self.alerts.evaluate_inventory(record, product, warehouse)
        if movement_type == StockMovementType.ADJUSTMENT:
            await self.alerts.record_adjustment(movement, record, product, warehouse, actor_id)

        logger.info(
            f"📦 {movement_type.value} {quantity} x {product.sku} @ {warehouse.code} "
            f"(ref {reference_type.value}:{reference_id}) -> on hand {new_on_hand}"
        )
        return record

    async def apply_movement(
        self,
        product_id: int,
        warehouse_id: int,
        movement_type: StockMovementType,
        quantity: int,
        reference_type: StockReferenceType = StockReferenceType.MANUAL,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        commit: bool = True,
    ) -> InventoryRecordResponse:
        """
        Append one movement and update the matching record in the same transaction.

        Replaying an already applied (reference_type, reference_id) is a no-op
        that returns the current snapshot.
        """
        try:
            _validate_quantity(quantity)
            movement_type = _coerce(StockMovementType, movement_type, "movement type")
            reference_type = _coerce(StockReferenceType, reference_type, "reference type")

            product = await self._get_product(product_id)
            warehouse = await self._get_warehouse(warehouse_id)

            try:
                record = await self._apply(
                    product, warehouse, movement_type, quantity,
                    reference_type, reference_id, notes, actor_id
                )
            except DuplicateReferenceError as dup:
                logger.info(f"↩️  {dup.detail}; ignoring replay")
                record = await self.lock_record(product_id, warehouse_id, create=False)
                snapshot = record_snapshot(record, product, warehouse)
                if commit:
                    # release the row lock taken for the replay check
                    await self.db.rollback()
                return snapshot

            if commit:
                await self.db.commit()
            return record_snapshot(record, product, warehouse)

        except HTTPException:
            if commit:
                await self.db.rollback()
            raise
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Error applying stock movement for product {product_id} @ warehouse {warehouse_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to apply stock movement")

    async def transfer(
        self,
        product_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        quantity: int,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        commit: bool = True,
    ) -> TransferResponse:
        """Move stock between warehouses as a TRANSFER out and an IN, atomically"""
        try:
            _validate_quantity(quantity)
            if from_warehouse_id == to_warehouse_id:
                raise ValidationError("Source and destination warehouse must differ")

            product = await self._get_product(product_id)
            source = await self._get_warehouse(from_warehouse_id)
            destination = await self._get_warehouse(to_warehouse_id)

            # Lock in warehouse id order so opposite transfers cannot deadlock
            for warehouse_id in sorted((from_warehouse_id, to_warehouse_id)):
                await self.lock_record(product_id, warehouse_id)

            reference = reference_id or uuid.uuid4().hex
            note = notes or f"Transfer {source.code} -> {destination.code}"

            if reference_id and await self.find_movement(StockReferenceType.TRANSFER, f"{reference}:out"):
                logger.info(f"↩️  Transfer {reference} was already applied; ignoring replay")
                out_record = await self.lock_record(product_id, from_warehouse_id, create=False)
                in_record = await self.lock_record(product_id, to_warehouse_id, create=False)
                replayed = TransferResponse(
                    source=record_snapshot(out_record, product, source),
                    destination=record_snapshot(in_record, product, destination),
                )
                if commit:
                    await self.db.rollback()
                return replayed

            out_record = await self._apply(
                product, source, StockMovementType.TRANSFER, quantity,
                StockReferenceType.TRANSFER, f"{reference}:out", note, actor_id
            )
            in_record = await self._apply(
                product, destination, StockMovementType.IN, quantity,
                StockReferenceType.TRANSFER, f"{reference}:in", note, actor_id
            )

            if commit:
                await self.db.commit()
            return TransferResponse(
                source=record_snapshot(out_record, product, source),
                destination=record_snapshot(in_record, product, destination),
            )

        except HTTPException:
            if commit:
                await self.db.rollback()
            raise
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Error transferring product {product_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to transfer stock")

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    async def reserve(
        self,
        product_id: int,
        warehouse_id: int,
        quantity: int,
        actor_id: Optional[int] = None,
        commit: bool = True,
    ) -> InventoryRecordResponse:
        try:
            _validate_quantity(quantity)
            product = await self._get_product(product_id)
            warehouse = await self._get_warehouse(warehouse_id)

            record = await self.lock_record(product_id, warehouse_id, create=False)
            available = record.quantity_available if record is not None else 0
            if quantity > available:
                raise InsufficientAvailableError(
                    f"Cannot reserve {quantity} of {product.sku} at {warehouse.code}: only {available} available"
                )

            record.quantity_reserved += quantity
            record.last_updated_at = datetime.now(timezone.utc)
            record.updated_by = actor_id
            await self.db.flush()
            await self.alerts.evaluate_inventory(record, product, warehouse)

            if commit:
                await self.db.commit()
            logger.info(f"🔒 Reserved {quantity} x {product.sku} @ {warehouse.code} -> reserved {record.quantity_reserved}")
            return record_snapshot(record, product, warehouse)

        except HTTPException:
            if commit:
                await self.db.rollback()
            raise
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Error reserving product {product_id} @ warehouse {warehouse_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to reserve stock")

    async def release(
        self,
        product_id: int,
        warehouse_id: int,
        quantity: int,
        actor_id: Optional[int] = None,
        commit: bool = True,
    ) -> InventoryRecordResponse:
        try:
            _validate_quantity(quantity)
            product = await self._get_product(product_id, require_active=False)
            warehouse = await self._get_warehouse(warehouse_id, require_active=False)

            record = await self.lock_record(product_id, warehouse_id, create=False)
            reserved = record.quantity_reserved if record is not None else 0
            if quantity > reserved:
                raise ValidationError(
                    f"Cannot release {quantity} of {product.sku} at {warehouse.code}: only {reserved} reserved"
                )

            record.quantity_reserved -= quantity
            record.last_updated_at = datetime.now(timezone.utc)
            record.updated_by = actor_id
            await self.db.flush()
            await self.alerts.evaluate_inventory(record, product, warehouse)

            if commit:
                await self.db.commit()
            logger.info(f"🔓 Released {quantity} x {product.sku} @ {warehouse.code} -> reserved {record.quantity_reserved}")
            return record_snapshot(record, product, warehouse)

        except HTTPException:
            if commit:
                await self.db.rollback()
            raise
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Error releasing product {product_id} @ warehouse {warehouse_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to release reservation")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_record(self, product_id: int, warehouse_id: int) -> InventoryRecordResponse:
        """Current snapshot; a pair without a row reads as all zeros"""
        product = await self._get_product(product_id, require_active=False)
        warehouse = await self._get_warehouse(warehouse_id, require_active=False)
        result = await self.db.execute(
            select(InventoryRecord).where(
                and_(
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.warehouse_id == warehouse_id
                )
            )
        )
        return record_snapshot(result.scalar_one_or_none(), product, warehouse)

    async def list_records(
        self,
        page_index: int = 1,
        page_size: int = 50,
        warehouse_id: Optional[int] = None,
        product_id: Optional[int] = None,
        low_stock_only: bool = False,
    ) -> Dict[str, Any]:
        """Inventory records with product/warehouse context; low stock uses the reorder point rule"""
        conditions = [InventoryRecord.is_deleted == False, Product.is_deleted == False]
        if warehouse_id is not None:
            conditions.append(InventoryRecord.warehouse_id == warehouse_id)
        if product_id is not None:
            conditions.append(InventoryRecord.product_id == product_id)
        if low_stock_only:
            conditions.append(Product.is_active == True)
            conditions.append(InventoryRecord.quantity_available <= Product.reorder_point)

        base = (
            select(InventoryRecord, Product, Warehouse)
            .join(Product, Product.id == InventoryRecord.product_id)
            .join(Warehouse, Warehouse.id == InventoryRecord.warehouse_id)
            .where(and_(*conditions))
        )
        total = (await self.db.execute(
            select(func.count(InventoryRecord.id))
            .select_from(InventoryRecord)
            .join(Product, Product.id == InventoryRecord.product_id)
            .where(and_(*conditions))
        )).scalar() or 0

        if low_stock_only:
            ordering = [
                (Product.reorder_point - InventoryRecord.quantity_available).desc(),
                InventoryRecord.product_id,
                InventoryRecord.warehouse_id,
            ]
        else:
            ordering = [InventoryRecord.product_id, InventoryRecord.warehouse_id]

        result = await self.db.execute(
            base.order_by(*ordering).offset((page_index - 1) * page_size).limit(page_size)
        )
        data = [record_snapshot(record, product, warehouse) for record, product, warehouse in result.all()]
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": data,
        }

    async def list_movements(
        self,
        page_index: int = 1,
        page_size: int = 50,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        movement_type: Optional[StockMovementType] = None,
        reference_type: Optional[StockReferenceType] = None,
        reference_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [StockMovement.is_deleted == False]
        if product_id is not None:
            conditions.append(StockMovement.product_id == product_id)
        if warehouse_id is not None:
            conditions.append(StockMovement.warehouse_id == warehouse_id)
        if movement_type:
            conditions.append(StockMovement.movement_type == movement_type)
        if reference_type:
            conditions.append(StockMovement.reference_type == reference_type)
        if reference_id:
            conditions.append(StockMovement.reference_id == reference_id)

        total = (await self.db.execute(
            select(func.count(StockMovement.id)).where(and_(*conditions))
        )).scalar() or 0
        result = await self.db.execute(
            select(StockMovement)
            .where(and_(*conditions))
            .order_by(StockMovement.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def replay(self, product_id: int, warehouse_id: int) -> Tuple[int, int]:
        """Signed sum of the movement history; returns (on_hand, movement_count)"""
        inbound = (StockMovementType.IN, StockMovementType.ADJUSTMENT)
        signed = case(
            (StockMovement.movement_type.in_(inbound), StockMovement.quantity),
            else_=-StockMovement.quantity,
        )
        result = await self.db.execute(
            select(func.coalesce(func.sum(signed), 0), func.count(StockMovement.id)).where(
                and_(
                    StockMovement.product_id == product_id,
                    StockMovement.warehouse_id == warehouse_id
                )
            )
        )
        on_hand, count = result.one()
        return int(on_hand), int(count)

    async def reconcile(self, product_id: int, warehouse_id: int) -> ReconciliationResponse:
        """Compare the stored on-hand quantity with a replay of the movement history"""
        snapshot = await self.get_record(product_id, warehouse_id)
        replayed, count = await self.replay(product_id, warehouse_id)
        consistent = replayed == snapshot.quantity_on_hand
        if not consistent:
            logger.error(
                f"❌ Ledger mismatch for product {product_id} @ warehouse {warehouse_id}: "
                f"replayed {replayed}, recorded {snapshot.quantity_on_hand}"
            )
        return ReconciliationResponse(
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_count=count,
            replayed_on_hand=replayed,
            recorded_on_hand=snapshot.quantity_on_hand,
            consistent=consistent,
        )
