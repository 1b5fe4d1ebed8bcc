# app/services/alerts/alert_service.py
import logging
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, date, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException

from app.core.config import settings
from app.core.exceptions import NotFoundError, InvalidTransitionError, wrap_unexpected
from app.models.alerts.alert import Alert
from app.models.inventory.inventory_record import InventoryRecord
from app.models.inventory.product import Product
from app.models.inventory.stock_movement import StockMovement
from app.models.organization.warehouse import Warehouse
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.shared.enums import (
    AlertType, AlertSeverity, AlertPriority, AlertStatus, AlertReferenceType, PurchaseOrderStatus
)
from app.schemas.alerts.alert import AlertCreate, AlertSummary, AlertScanResult

logger = logging.getLogger(__name__)

OPEN_ALERT_STATUSES = (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)

ALERT_TRANSITIONS = {
    AlertStatus.ACTIVE: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.RESOLVED: set(),
    AlertStatus.DISMISSED: set(),
}

# Statuses after which a purchase order no longer awaits delivery
DELIVERY_SETTLED_STATUSES = (
    PurchaseOrderStatus.FULLY_RECEIVED,
    PurchaseOrderStatus.CANCELLED,
    PurchaseOrderStatus.CLOSED,
)

DUE_ALERT_STATUSES = (
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
)

STOCK_ALERT_TYPES = (AlertType.LOW_STOCK, AlertType.OUT_OF_STOCK)
ORDER_ALERT_TYPES = (AlertType.PURCHASE_ORDER_DUE, AlertType.PURCHASE_ORDER_OVERDUE)


def low_stock_severity(available: int, reorder_point: int) -> Tuple[AlertSeverity, AlertPriority]:
    """Severity grows as available stock falls further below the reorder point"""
    if available <= 0:
        return AlertSeverity.CRITICAL, AlertPriority.URGENT
    ratio = available / reorder_point if reorder_point else 1
    if ratio <= settings.LOW_STOCK_HIGH_SEVERITY_RATIO:
        return AlertSeverity.HIGH, AlertPriority.HIGH
    if ratio <= settings.LOW_STOCK_MEDIUM_SEVERITY_RATIO:
        return AlertSeverity.MEDIUM, AlertPriority.HIGH
    return AlertSeverity.LOW, AlertPriority.NORMAL


class AlertService:
    """Derives alerts from ledger and purchase order state, and owns their lifecycle"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    async def _open_alert(self, alert_type: AlertType, reference_type: AlertReferenceType, reference_id: Optional[int]) -> Optional[Alert]:
        result = await self.db.execute(
            select(Alert)
            .where(
                and_(
                    Alert.alert_type == alert_type,
                    Alert.reference_type == reference_type,
                    Alert.reference_id == reference_id,
                    Alert.status.in_(OPEN_ALERT_STATUSES),
                    Alert.is_deleted == False
                )
            )
            .order_by(Alert.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _raise(
        self,
        alert_type: AlertType,
        reference_type: AlertReferenceType,
        reference_id: Optional[int],
        severity: AlertSeverity,
        priority: AlertPriority,
        title: str,
        message: str,
        actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[Alert]:
        """Create an ACTIVE alert unless one is already open for the same condition"""
        if await self._open_alert(alert_type, reference_type, reference_id):
            return None

        alert = Alert(
            alert_type=alert_type,
            severity=severity,
            priority=priority,
            status=AlertStatus.ACTIVE,
            title=title,
            message=message,
            reference_type=reference_type,
            reference_id=reference_id,
            triggered_at=datetime.now(timezone.utc),
            notes=notes,
            created_by=actor_id,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(alert)
                await self.db.flush()
        except IntegrityError:
            # Another writer raised the same condition first
            logger.info(f"Alert {alert_type.value} for {reference_type.value}:{reference_id} already active")
            return None

        logger.info(f"🔔 Alert raised: {alert_type.value} {severity.value} for {reference_type.value}:{reference_id}")
        return alert

    async def _resolve_open(
        self,
        alert_types,
        reference_type: AlertReferenceType,
        reference_id: int,
        reason: str,
    ) -> int:
        result = await self.db.execute(
            select(Alert).where(
                and_(
                    Alert.alert_type.in_(alert_types),
                    Alert.reference_type == reference_type,
                    Alert.reference_id == reference_id,
                    Alert.status.in_(OPEN_ALERT_STATUSES),
                    Alert.is_deleted == False
                )
            )
        )
        alerts = result.scalars().all()
        now = datetime.now(timezone.utc)
        for alert in alerts:
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = now
            alert.notes = _append_note(alert.notes, f"Auto-resolved: {reason}")
            logger.info(f"✅ Alert {alert.id} ({alert.alert_type.value}) auto-resolved: {reason}")
        if alerts:
            await self.db.flush()
        return len(alerts)

    async def evaluate_inventory(
        self,
        record: InventoryRecord,
        product: Product,
        warehouse: Optional[Warehouse] = None,
    ) -> Tuple[int, int]:
        """Raise or clear stock alerts for one inventory record; returns (raised, resolved)"""
        available = record.quantity_on_hand - record.quantity_reserved
        reorder_point = product.reorder_point or 0
        tracked = bool(product.is_active) and reorder_point > 0
        out_of_stock = tracked and available <= 0
        low_stock = tracked and 0 < available <= reorder_point
        where = warehouse.name if warehouse is not None else f"warehouse {record.warehouse_id}"

        raised = 0
        resolved = 0

        if not out_of_stock:
            resolved += await self._resolve_open(
                [AlertType.OUT_OF_STOCK], AlertReferenceType.INVENTORY, record.id,
                f"{available} units available"
            )
        if not low_stock:
            reason = "stock replenished above reorder point" if not out_of_stock else "stock depleted"
            resolved += await self._resolve_open(
                [AlertType.LOW_STOCK], AlertReferenceType.INVENTORY, record.id, reason
            )

        if out_of_stock or low_stock:
            severity, priority = low_stock_severity(available, reorder_point)
            if out_of_stock:
                alert_type = AlertType.OUT_OF_STOCK
                title = f"Out of stock: {product.sku}"
                message = f"{product.name} ({product.sku}) is out of stock in {where}."
            else:
                alert_type = AlertType.LOW_STOCK
                title = f"Low stock: {product.sku}"
                message = (
                    f"{product.name} ({product.sku}) has {available} units available in {where}, "
                    f"at or below its reorder point of {reorder_point}."
                )
            if await self._raise(alert_type, AlertReferenceType.INVENTORY, record.id, severity, priority, title, message):
                raised += 1

        return raised, resolved

    async def record_adjustment(
        self,
        movement: StockMovement,
        record: InventoryRecord,
        product: Product,
        warehouse: Warehouse,
        actor_id: Optional[int] = None,
    ) -> Optional[Alert]:
        """Informational alert for a manual stock correction; one per adjustment movement"""
        message = (
            f"{product.name} ({product.sku}) in {warehouse.name} was adjusted by +{movement.quantity}; "
            f"{record.quantity_on_hand} now on hand."
        )
        return await self._raise(
            AlertType.INVENTORY_ADJUSTMENT,
            AlertReferenceType.STOCK_MOVEMENT,
            movement.id,
            AlertSeverity.LOW,
            AlertPriority.NORMAL,
            f"Inventory adjusted: {product.sku}",
            message,
            actor_id=actor_id,
            notes=movement.notes,
        )

    async def evaluate_purchase_order(self, order: PurchaseOrder, today: Optional[date] = None) -> Tuple[int, int]:
        """Raise or clear delivery alerts for one purchase order; returns (raised, resolved)"""
        today = today or date.today()
        expected = order.expected_delivery_date
        overdue = (
            expected is not None
            and expected < today
            and order.status not in DELIVERY_SETTLED_STATUSES
        )
        due_today = (
            expected is not None
            and expected == today
            and order.status in DUE_ALERT_STATUSES
        )

        raised = 0
        resolved = 0
        if not overdue:
            resolved += await self._resolve_open(
                [AlertType.PURCHASE_ORDER_OVERDUE], AlertReferenceType.PURCHASE_ORDER, order.id,
                f"order {order.po_number} is {order.status.value}"
            )
        if not due_today:
            resolved += await self._resolve_open(
                [AlertType.PURCHASE_ORDER_DUE], AlertReferenceType.PURCHASE_ORDER, order.id,
                f"order {order.po_number} is no longer due today"
            )

        if overdue:
            days = (today - expected).days
            alert = await self._raise(
                AlertType.PURCHASE_ORDER_OVERDUE,
                AlertReferenceType.PURCHASE_ORDER,
                order.id,
                AlertSeverity.CRITICAL,
                AlertPriority.URGENT,
                f"Purchase order overdue: {order.po_number}",
                f"Purchase order {order.po_number} was expected on {expected.isoformat()} "
                f"and is {days} day(s) overdue (status {order.status.value}).",
            )
            raised += 1 if alert else 0
        elif due_today:
            alert = await self._raise(
                AlertType.PURCHASE_ORDER_DUE,
                AlertReferenceType.PURCHASE_ORDER,
                order.id,
                AlertSeverity.HIGH,
                AlertPriority.HIGH,
                f"Purchase order due today: {order.po_number}",
                f"Purchase order {order.po_number} is expected to be delivered today.",
            )
            raised += 1 if alert else 0

        return raised, resolved

    async def scan(self, today: Optional[date] = None) -> AlertScanResult:
        """Re-evaluate every inventory record and every order awaiting delivery"""
        today = today or date.today()
        try:
            raised = 0
            resolved = 0

            records = await self.db.execute(
                select(InventoryRecord, Product, Warehouse)
                .join(Product, Product.id == InventoryRecord.product_id)
                .join(Warehouse, Warehouse.id == InventoryRecord.warehouse_id)
                .where(InventoryRecord.is_deleted == False)
                .order_by(InventoryRecord.id)
            )
            inventory_rows = records.all()
            for record, product, warehouse in inventory_rows:
                r, s = await self.evaluate_inventory(record, product, warehouse)
                raised += r
                resolved += s

            alerted_orders = select(Alert.reference_id).where(
                and_(
                    Alert.reference_type == AlertReferenceType.PURCHASE_ORDER,
                    Alert.status.in_(OPEN_ALERT_STATUSES)
                )
            )
            orders = await self.db.execute(
                select(PurchaseOrder)
                .where(
                    and_(
                        PurchaseOrder.is_deleted == False,
                        or_(
                            and_(
                                PurchaseOrder.expected_delivery_date.is_not(None),
                                PurchaseOrder.expected_delivery_date <= today,
                                PurchaseOrder.status.not_in(DELIVERY_SETTLED_STATUSES)
                            ),
                            PurchaseOrder.id.in_(alerted_orders)
                        )
                    )
                )
                .order_by(PurchaseOrder.id)
            )
            order_rows = orders.scalars().all()
            for order in order_rows:
                r, s = await self.evaluate_purchase_order(order, today)
                raised += r
                resolved += s

            await self.db.commit()
            logger.info(
                f"🔎 Alert scan complete: {raised} raised, {resolved} resolved "
                f"({len(inventory_rows)} records, {len(order_rows)} orders)"
            )
            return AlertScanResult(
                raised=raised,
                resolved=resolved,
                inventory_checked=len(inventory_rows),
                orders_checked=len(order_rows),
            )

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error scanning alerts: {str(e)}")
            raise wrap_unexpected(e, "Failed to scan alerts")

    # ------------------------------------------------------------------
    # Manual lifecycle
    # ------------------------------------------------------------------

    async def create_alert(self, alert_data: AlertCreate, actor_id: Optional[int] = None) -> Alert:
        """Raise a manual system alert; an open alert with the same reference is returned as-is"""
        try:
            alert = await self._raise(
                AlertType.SYSTEM_ALERT,
                AlertReferenceType.SYSTEM,
                alert_data.reference_id,
                alert_data.severity,
                alert_data.priority,
                alert_data.title,
                alert_data.message,
                actor_id=actor_id,
                notes=alert_data.notes,
            )
            if alert is None:
                alert = await self._open_alert(AlertType.SYSTEM_ALERT, AlertReferenceType.SYSTEM, alert_data.reference_id)
            await self.db.commit()
            return alert

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating alert: {str(e)}")
            raise wrap_unexpected(e, "Failed to create alert")

    async def update_status(
        self,
        alert_id: int,
        new_status: AlertStatus,
        actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Alert:
        try:
            result = await self.db.execute(
                select(Alert)
                .where(and_(Alert.id == alert_id, Alert.is_deleted == False))
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            alert = result.scalar_one_or_none()
            if not alert:
                raise NotFoundError(f"Alert {alert_id} not found")

            if new_status not in ALERT_TRANSITIONS[alert.status]:
                raise InvalidTransitionError(
                    f"Alert {alert_id} cannot move from {alert.status.value} to {new_status.value}"
                )

            now = datetime.now(timezone.utc)
            if new_status == AlertStatus.ACKNOWLEDGED:
                alert.acknowledged_at = now
                alert.acknowledged_by = actor_id
            else:
                alert.resolved_at = now
                alert.resolved_by = actor_id

            previous = alert.status
            alert.status = new_status
            alert.updated_by = actor_id
            if notes:
                alert.notes = _append_note(alert.notes, notes)

            await self.db.commit()
            logger.info(f"Alert {alert_id} moved {previous.value} -> {new_status.value} by user {actor_id}")
            return alert

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error updating alert {alert_id}: {str(e)}")
            raise wrap_unexpected(e, "Failed to update alert")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_alert(self, alert_id: int) -> Alert:
        result = await self.db.execute(
            select(Alert).where(and_(Alert.id == alert_id, Alert.is_deleted == False))
        )
        alert = result.scalar_one_or_none()
        if not alert:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    async def get_alerts(
        self,
        page_index: int = 1,
        page_size: int = 50,
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        priority: Optional[AlertPriority] = None,
        status: Optional[AlertStatus] = None,
        reference_type: Optional[AlertReferenceType] = None,
        reference_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Get alerts with pagination and filters, newest first"""
        conditions = [Alert.is_deleted == False]
        if alert_type:
            conditions.append(Alert.alert_type == alert_type)
        if severity:
            conditions.append(Alert.severity == severity)
        if priority:
            conditions.append(Alert.priority == priority)
        if status:
            conditions.append(Alert.status == status)
        if reference_type:
            conditions.append(Alert.reference_type == reference_type)
        if reference_id is not None:
            conditions.append(Alert.reference_id == reference_id)

        total = (await self.db.execute(
            select(func.count(Alert.id)).where(and_(*conditions))
        )).scalar() or 0

        result = await self.db.execute(
            select(Alert)
            .where(and_(*conditions))
            .order_by(Alert.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def get_alert_summary(self) -> AlertSummary:
        async def count(*conditions) -> int:
            result = await self.db.execute(
                select(func.count(Alert.id)).where(and_(Alert.is_deleted == False, *conditions))
            )
            return result.scalar() or 0

        return AlertSummary(
            active=await count(Alert.status == AlertStatus.ACTIVE),
            acknowledged=await count(Alert.status == AlertStatus.ACKNOWLEDGED),
            unresolved=await count(Alert.status.in_(OPEN_ALERT_STATUSES)),
            critical=await count(Alert.status.in_(OPEN_ALERT_STATUSES), Alert.severity == AlertSeverity.CRITICAL),
            urgent=await count(Alert.status.in_(OPEN_ALERT_STATUSES), Alert.priority == AlertPriority.URGENT),
        )


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note
