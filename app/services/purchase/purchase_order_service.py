# app/services/purchase/purchase_order_service.py
import logging
from typing import Optional, List, Dict, Any, Iterable
from datetime import datetime, date, timezone
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from fastapi import HTTPException

from app.auth.permissions import PermissionChecker
from app.core.exceptions import (
    ValidationError,
    NotFoundError,
    InvalidTransitionError,
    OverReceiptError,
    ConcurrencyError,
    wrap_unexpected,
)
from app.models.inventory.product import Product
from app.models.organization.warehouse import Warehouse
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.purchase.supplier import Supplier
from app.models.shared.enums import PurchaseOrderStatus, StockMovementType, StockReferenceType
from app.schemas.purchase.purchase_order_schema import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderItemCreate,
    PurchaseOrderSummary,
    ReceivedItem,
)
from app.services.alerts.alert_service import AlertService
from app.services.inventory.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

PO_NUMBER_ATTEMPTS = 5
CENTS = Decimal("0.01")

TRANSITIONS = {
    PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.SUBMITTED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.SUBMITTED: {PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.APPROVED: {PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.ORDERED: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.PARTIALLY_RECEIVED: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.FULLY_RECEIVED: {PurchaseOrderStatus.CLOSED},
    PurchaseOrderStatus.CANCELLED: {PurchaseOrderStatus.CLOSED},
    PurchaseOrderStatus.CLOSED: set(),
}

# Entered only by receiving goods
RECEIVING_STATUSES = (PurchaseOrderStatus.PARTIALLY_RECEIVED, PurchaseOrderStatus.FULLY_RECEIVED)
RECEIVABLE_STATUSES = (PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.PARTIALLY_RECEIVED)

OPEN_STATUSES = (
    PurchaseOrderStatus.DRAFT,
    PurchaseOrderStatus.SUBMITTED,
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
)

TRANSITION_PERMISSIONS = {
    PurchaseOrderStatus.SUBMITTED: ("purchase_order", "submit"),
    PurchaseOrderStatus.APPROVED: ("purchase_order", "approve"),
    PurchaseOrderStatus.ORDERED: ("purchase_order", "order"),
    PurchaseOrderStatus.CANCELLED: ("purchase_order", "cancel"),
    PurchaseOrderStatus.CLOSED: ("purchase_order", "close"),
}


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (Decimal(str(unit_price)) * quantity).quantize(CENTS)


class PurchaseOrderService:
    """
    Purchase order state machine. The only writer of order status and
    received quantities; receiving credits stock through the inventory ledger.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.alerts = AlertService(session)
        self.ledger = InventoryLedger(session, alert_service=self.alerts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def generate_po_number(self, order_date: Optional[date] = None) -> str:
        """PO-YYYYMMDD-NNN, sequenced per day"""
        prefix = f"PO-{(order_date or date.today()).strftime('%Y%m%d')}-"
        result = await self.session.execute(
            select(func.max(PurchaseOrder.po_number))
            .where(PurchaseOrder.po_number.like(f"{prefix}%"))
        )
        latest_po = result.scalar()
        sequence = int(latest_po.rsplit("-", 1)[1]) + 1 if latest_po else 1
        return f"{prefix}{sequence:03d}"

    async def _load_order(self, po_id: int, for_update: bool = False) -> PurchaseOrder:
        query = (
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.product),
                selectinload(PurchaseOrder.supplier),
                selectinload(PurchaseOrder.warehouse),
            )
            .where(and_(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        purchase_order = (await self.session.execute(query)).scalar_one_or_none()
        if not purchase_order:
            raise NotFoundError(f"Purchase order {po_id} not found")
        return purchase_order

    async def _require_supplier(self, supplier_id: int) -> Supplier:
        result = await self.session.execute(
            select(Supplier).where(
                and_(
                    Supplier.id == supplier_id,
                    Supplier.is_active == True,
                    Supplier.is_deleted == False
                )
            )
        )
        supplier = result.scalar_one_or_none()
        if not supplier:
            raise NotFoundError(f"Supplier {supplier_id} not found or inactive")
        return supplier

    async def _require_warehouse(self, warehouse_id: int) -> Warehouse:
        result = await self.session.execute(
            select(Warehouse).where(
                and_(
                    Warehouse.id == warehouse_id,
                    Warehouse.is_active == True,
                    Warehouse.is_deleted == False
                )
            )
        )
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            raise NotFoundError(f"Warehouse {warehouse_id} not found or inactive")
        return warehouse

    async def _validate_lines(self, items: Iterable[PurchaseOrderItemCreate], existing_product_ids: Iterable[int] = ()) -> None:
        seen = set(existing_product_ids)
        product_ids = []
        for item in items:
            if item.quantity_ordered is None or item.quantity_ordered <= 0:
                raise ValidationError(f"Quantity ordered for product {item.product_id} must be positive")
            if item.unit_price is None or item.unit_price < 0:
                raise ValidationError(f"Unit price for product {item.product_id} cannot be negative")
            if item.product_id in seen:
                raise ValidationError(f"Product {item.product_id} appears more than once on the order")
            seen.add(item.product_id)
            product_ids.append(item.product_id)

        if not product_ids:
            return
        result = await self.session.execute(
            select(Product.id).where(
                and_(
                    Product.id.in_(product_ids),
                    Product.is_active == True,
                    Product.is_deleted == False
                )
            )
        )
        active = set(result.scalars().all())
        missing = [product_id for product_id in product_ids if product_id not in active]
        if missing:
            raise NotFoundError(f"Product(s) {', '.join(map(str, missing))} not found or inactive")

    def _build_line(self, item: PurchaseOrderItemCreate, user_id: Optional[int]) -> PurchaseOrderItem:
        return PurchaseOrderItem(
            product_id=item.product_id,
            quantity_ordered=item.quantity_ordered,
            quantity_received=0,
            unit_price=item.unit_price,
            total_price=line_total(item.unit_price, item.quantity_ordered),
            notes=item.notes,
            created_by=user_id,
        )

    def _recompute_total(self, purchase_order: PurchaseOrder) -> None:
        total = Decimal("0")
        for item in purchase_order.items:
            item.total_price = line_total(item.unit_price, item.quantity_ordered)
            total += item.total_price
        purchase_order.total_amount = total.quantize(CENTS)

    def _require_draft(self, purchase_order: PurchaseOrder, action: str) -> None:
        if purchase_order.status != PurchaseOrderStatus.DRAFT:
            raise InvalidTransitionError(
                f"Cannot {action} purchase order {purchase_order.po_number} in status "
                f"{purchase_order.status.value}; only DRAFT orders can be edited"
            )

    # ------------------------------------------------------------------
    # Creation and draft edits
    # ------------------------------------------------------------------

    async def create_purchase_order(
        self,
        po_data: PurchaseOrderCreate,
        user_id: Optional[int],
        checker: PermissionChecker,
        commit: bool = True,
    ) -> PurchaseOrder:
        """Create a DRAFT purchase order with its line items"""
        try:
            checker.require("purchase_order", "create")
            if not po_data.items:
                raise ValidationError("Purchase order must have at least one item")

            await self._require_supplier(po_data.supplier_id)
            await self._require_warehouse(po_data.warehouse_id)
            await self._validate_lines(po_data.items)

            order_date = po_data.order_date or date.today()
            if po_data.expected_delivery_date and po_data.expected_delivery_date < order_date:
                raise ValidationError("Expected delivery date cannot be before the order date")

            purchase_order = None
            for attempt in range(PO_NUMBER_ATTEMPTS):
                candidate = PurchaseOrder(
                    po_number=await self.generate_po_number(order_date),
                    supplier_id=po_data.supplier_id,
                    warehouse_id=po_data.warehouse_id,
                    order_date=order_date,
                    expected_delivery_date=po_data.expected_delivery_date,
                    status=PurchaseOrderStatus.DRAFT,
                    notes=po_data.notes,
                    created_by=user_id,
                    updated_by=user_id,
                    items=[self._build_line(item, user_id) for item in po_data.items],
                )
                self._recompute_total(candidate)
                try:
                    async with self.session.begin_nested():
                        self.session.add(candidate)
                        await self.session.flush()
                    purchase_order = candidate
                    break
                except IntegrityError:
                    logger.warning(f"PO number {candidate.po_number} taken, retrying (attempt {attempt + 1})")
            if purchase_order is None:
                raise ConcurrencyError("Could not allocate a purchase order number")

            await self.alerts.evaluate_purchase_order(purchase_order)

            if commit:
                await self.session.commit()
            logger.info(
                f"Purchase order created: {purchase_order.po_number} "
                f"({len(po_data.items)} items, total {purchase_order.total_amount}) by user {user_id}"
            )
            return await self._load_order(purchase_order.id)

        except HTTPException:
            if commit:
                await self.session.rollback()
            raise
        except Exception as e:
            if commit:
                await self.session.rollback()
            logger.error(f"Error creating purchase order: {str(e)}")
            raise wrap_unexpected(e, "Failed to create purchase order")

    async def update_purchase_order(
        self,
        po_id: int,
        po_data: PurchaseOrderUpdate,
        user_id: Optional[int],
        checker: PermissionChecker,
    ) -> PurchaseOrder:
        """Edit a DRAFT order; given items replace the existing lines"""
        try:
            checker.require("purchase_order", "update")
            purchase_order = await self._load_order(po_id, for_update=True)
            self._require_draft(purchase_order, "update")

            update_data = po_data.model_dump(exclude_unset=True, exclude={"items"})
            for field, value in update_data.items():
                setattr(purchase_order, field, value)
            if purchase_order.expected_delivery_date and purchase_order.expected_delivery_date < purchase_order.order_date:
                raise ValidationError("Expected delivery date cannot be before the order date")

            if po_data.items is not None:
                await self._validate_lines(po_data.items)
                purchase_order.items.clear()
                await self.session.flush()
                for item in po_data.items:
                    purchase_order.items.append(self._build_line(item, user_id))

            self._recompute_total(purchase_order)
            purchase_order.updated_by = user_id
            await self.session.flush()
            await self.alerts.evaluate_purchase_order(purchase_order)

            await self.session.commit()
            logger.info(f"Purchase order {purchase_order.po_number} updated by user {user_id}")
            return await self._load_order(po_id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating purchase order {po_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to update purchase order")

    async def add_items(
        self,
        po_id: int,
        items: List[PurchaseOrderItemCreate],
        user_id: Optional[int],
        checker: PermissionChecker,
        commit: bool = True,
    ) -> PurchaseOrder:
        """Append lines to a DRAFT order, merging quantities for products already on it"""
        try:
            checker.require("purchase_order", "update")
            purchase_order = await self._load_order(po_id, for_update=True)
            self._require_draft(purchase_order, "add items to")

            existing = {item.product_id: item for item in purchase_order.items}
            new_lines = [item for item in items if item.product_id not in existing]
            await self._validate_lines(new_lines)

            for item in items:
                if item.quantity_ordered <= 0:
                    raise ValidationError(f"Quantity ordered for product {item.product_id} must be positive")
                line = existing.get(item.product_id)
                if line is not None:
                    line.quantity_ordered += item.quantity_ordered
                    line.updated_by = user_id
                else:
                    purchase_order.items.append(self._build_line(item, user_id))

            self._recompute_total(purchase_order)
            purchase_order.updated_by = user_id
            await self.session.flush()

            if commit:
                await self.session.commit()
            logger.info(f"Added {len(items)} line(s) to purchase order {purchase_order.po_number}")
            return await self._load_order(po_id)

        except HTTPException:
            if commit:
                await self.session.rollback()
            raise
        except Exception as e:
            if commit:
                await self.session.rollback()
            logger.error(f"Error adding items to purchase order {po_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to add items to purchase order")

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        po_id: int,
        new_status: PurchaseOrderStatus,
        user_id: Optional[int],
        checker: PermissionChecker,
        notes: Optional[str] = None,
        commit: bool = True,
    ) -> PurchaseOrder:
        """Move an order to ``new_status`` if the transition table allows it"""
        try:
            try:
                new_status = PurchaseOrderStatus(new_status)
            except ValueError:
                raise ValidationError(f"Unknown purchase order status '{new_status}'")

            if new_status in TRANSITION_PERMISSIONS:
                resource, action = TRANSITION_PERMISSIONS[new_status]
                checker.require(resource, action, f"Insufficient permissions to move a purchase order to {new_status.value}")

            purchase_order = await self._load_order(po_id, for_update=True)
            current = purchase_order.status

            if new_status in RECEIVING_STATUSES:
                raise InvalidTransitionError(
                    f"Purchase order {purchase_order.po_number} reaches {new_status.value} only by receiving goods"
                )
            if new_status not in TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Cannot move purchase order {purchase_order.po_number} from {current.value} to {new_status.value}"
                )

            now = datetime.now(timezone.utc)
            purchase_order.status = new_status
            purchase_order.updated_by = user_id
            if new_status == PurchaseOrderStatus.APPROVED:
                purchase_order.approved_by = user_id
                purchase_order.approved_date = now
            elif new_status == PurchaseOrderStatus.CLOSED:
                purchase_order.closed_at = now
            if notes:
                entry = f"[{new_status.value}] {notes}"
                purchase_order.notes = f"{purchase_order.notes}\n{entry}" if purchase_order.notes else entry

            await self.session.flush()
            await self.alerts.evaluate_purchase_order(purchase_order)

            if commit:
                await self.session.commit()
            logger.info(
                f"Purchase order {purchase_order.po_number}: {current.value} -> {new_status.value} by user {user_id}"
            )
            return await self._load_order(po_id)

        except HTTPException:
            if commit:
                await self.session.rollback()
            raise
        except Exception as e:
            if commit:
                await self.session.rollback()
            logger.error(f"Error transitioning purchase order {po_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to update purchase order status")

    async def close(
        self,
        po_id: int,
        user_id: Optional[int],
        checker: PermissionChecker,
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        return await self.transition(po_id, PurchaseOrderStatus.CLOSED, user_id, checker, notes)

    @staticmethod
    def receipt_movement_reference(receipt_reference: str, item_id: int) -> str:
        return f"receipt:{receipt_reference}:{item_id}"

    async def _applied_lines(self, receipt_reference: str, item_ids: Iterable[int]) -> List[int]:
        applied = []
        for item_id in item_ids:
            reference_id = self.receipt_movement_reference(receipt_reference, item_id)
            if await self.ledger.find_movement(StockReferenceType.PURCHASE_ORDER, reference_id):
                applied.append(item_id)
        return applied

    async def receive(
        self,
        po_id: int,
        received_items: List[ReceivedItem],
        user_id: Optional[int],
        checker: PermissionChecker,
        receipt_reference: str,
    ) -> PurchaseOrder:
        """
        Record delivered quantities against the order's lines.

        The whole batch is validated before any stock moves; one IN movement
        per line is written through the ledger and the order becomes
        FULLY_RECEIVED or PARTIALLY_RECEIVED. ``receipt_reference`` identifies
        the delivery: repeating it returns the order unchanged, and reusing it
        for a batch that was only partly applied is rejected.
        """
        try:
            checker.require("purchase_order", "receive")
            receipt_reference = (receipt_reference or "").strip()
            if not receipt_reference:
                raise ValidationError("A receipt reference is required to receive goods")
            if not received_items:
                raise ValidationError("At least one received item is required")

            purchase_order = await self._load_order(po_id, for_update=True)
            items_by_id = {item.id: item for item in purchase_order.items}

            seen = []
            for line in received_items:
                if line.quantity_received is None or line.quantity_received <= 0:
                    raise ValidationError(f"Received quantity for item {line.item_id} must be positive")
                if line.item_id not in items_by_id:
                    raise NotFoundError(f"Item {line.item_id} is not part of purchase order {purchase_order.po_number}")
                if line.item_id in seen:
                    raise ValidationError(f"Item {line.item_id} appears more than once in the receipt")
                seen.append(line.item_id)

            applied = await self._applied_lines(receipt_reference, seen)
            if applied and len(applied) == len(seen):
                logger.info(f"↩️  Receipt {receipt_reference} for {purchase_order.po_number} already applied")
                await self.session.rollback()
                return await self._load_order(po_id)
            if applied:
                raise ValidationError(
                    f"Receipt {receipt_reference} was already applied to item(s) "
                    f"{', '.join(str(item_id) for item_id in applied)} of {purchase_order.po_number}; "
                    f"use a new reference for the remaining lines"
                )

            # FULLY_RECEIVED falls through so extra quantities report as over-receipt
            if purchase_order.status not in RECEIVABLE_STATUSES + (PurchaseOrderStatus.FULLY_RECEIVED,):
                raise InvalidTransitionError(
                    f"Cannot receive goods for purchase order {purchase_order.po_number} "
                    f"in status {purchase_order.status.value}"
                )

            for line in received_items:
                item = items_by_id[line.item_id]
                if item.quantity_received + line.quantity_received > item.quantity_ordered:
                    raise OverReceiptError(
                        f"Receiving {line.quantity_received} of {item.product.sku} on {purchase_order.po_number} "
                        f"exceeds the ordered {item.quantity_ordered} (already received {item.quantity_received})"
                    )

            if purchase_order.status not in RECEIVABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot receive goods for purchase order {purchase_order.po_number} "
                    f"in status {purchase_order.status.value}"
                )

            for line in received_items:
                item = items_by_id[line.item_id]
                cumulative = item.quantity_received + line.quantity_received
                await self.ledger.apply_movement(
                    product_id=item.product_id,
                    warehouse_id=purchase_order.warehouse_id,
                    movement_type=StockMovementType.IN,
                    quantity=line.quantity_received,
                    reference_type=StockReferenceType.PURCHASE_ORDER,
                    reference_id=self.receipt_movement_reference(receipt_reference, item.id),
                    notes=line.notes or f"Received against {purchase_order.po_number} ({receipt_reference})",
                    actor_id=user_id,
                    commit=False,
                )
                item.quantity_received = cumulative
                item.updated_by = user_id
                if line.notes:
                    item.notes = f"{item.notes}\n{line.notes}" if item.notes else line.notes

            previous = purchase_order.status
            if all(item.fully_received for item in purchase_order.items):
                purchase_order.status = PurchaseOrderStatus.FULLY_RECEIVED
            else:
                purchase_order.status = PurchaseOrderStatus.PARTIALLY_RECEIVED
            purchase_order.updated_by = user_id

            await self.session.flush()
            await self.alerts.evaluate_purchase_order(purchase_order)
            await self.session.commit()

            logger.info(
                f"📥 Received {len(received_items)} line(s) on {purchase_order.po_number}: "
                f"{previous.value} -> {purchase_order.status.value}"
            )
            return await self._load_order(po_id)

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error receiving purchase order {po_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to receive purchase order")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_purchase_order(self, po_id: int) -> PurchaseOrder:
        return await self._load_order(po_id)

    async def get_by_po_number(self, po_number: str) -> PurchaseOrder:
        result = await self.session.execute(
            select(PurchaseOrder.id).where(
                and_(PurchaseOrder.po_number == po_number, PurchaseOrder.is_deleted == False)
            )
        )
        po_id = result.scalar_one_or_none()
        if po_id is None:
            raise NotFoundError(f"Purchase order {po_number} not found")
        return await self._load_order(po_id)

    async def get_purchase_orders(
        self,
        page_index: int = 1,
        page_size: int = 50,
        status: Optional[PurchaseOrderStatus] = None,
        supplier_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get purchase orders with pagination and filters, newest first"""
        conditions = [PurchaseOrder.is_deleted == False]
        if status:
            conditions.append(PurchaseOrder.status == status)
        if supplier_id is not None:
            conditions.append(PurchaseOrder.supplier_id == supplier_id)
        if warehouse_id is not None:
            conditions.append(PurchaseOrder.warehouse_id == warehouse_id)
        if start_date:
            conditions.append(PurchaseOrder.order_date >= start_date)
        if end_date:
            conditions.append(PurchaseOrder.order_date <= end_date)
        if search:
            conditions.append(PurchaseOrder.po_number.ilike(f"%{search}%"))

        total = (await self.session.execute(
            select(func.count(PurchaseOrder.id)).where(and_(*conditions))
        )).scalar() or 0

        result = await self.session.execute(
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.product),
                selectinload(PurchaseOrder.supplier),
                selectinload(PurchaseOrder.warehouse),
            )
            .where(and_(*conditions))
            .order_by(PurchaseOrder.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def get_po_summary(self, today: Optional[date] = None) -> PurchaseOrderSummary:
        today = today or date.today()
        not_deleted = PurchaseOrder.is_deleted == False

        rows = await self.session.execute(
            select(PurchaseOrder.status, func.count(PurchaseOrder.id))
            .where(not_deleted)
            .group_by(PurchaseOrder.status)
        )
        status_counts = {status.value: 0 for status in PurchaseOrderStatus}
        for status, count in rows.all():
            status_counts[status.value] = count

        open_value = (await self.session.execute(
            select(func.coalesce(func.sum(PurchaseOrder.total_amount), 0))
            .where(and_(not_deleted, PurchaseOrder.status.in_(OPEN_STATUSES)))
        )).scalar()

        awaiting = PurchaseOrder.status.not_in(
            (PurchaseOrderStatus.FULLY_RECEIVED, PurchaseOrderStatus.CANCELLED, PurchaseOrderStatus.CLOSED)
        )
        overdue = (await self.session.execute(
            select(func.count(PurchaseOrder.id)).where(
                and_(not_deleted, awaiting, PurchaseOrder.expected_delivery_date < today)
            )
        )).scalar() or 0
        due_today = (await self.session.execute(
            select(func.count(PurchaseOrder.id)).where(
                and_(not_deleted, awaiting, PurchaseOrder.expected_delivery_date == today)
            )
        )).scalar() or 0

        return PurchaseOrderSummary(
            total_orders=sum(status_counts.values()),
            status_counts=status_counts,
            open_orders=sum(status_counts[status.value] for status in OPEN_STATUSES),
            open_order_value=Decimal(str(open_value)).quantize(CENTS),
            overdue_orders=overdue,
            due_today_orders=due_today,
        )
