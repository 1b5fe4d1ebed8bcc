from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.auth.permissions import PermissionChecker
from app.core.exceptions import NotFoundError, InvalidTransitionError
from app.models.alerts.alert import Alert
from app.models.inventory.product import Product
from app.models.shared.enums import (
    AlertType,
    AlertSeverity,
    AlertPriority,
    AlertStatus,
    AlertReferenceType,
    PurchaseOrderStatus,
    StockMovementType,
)
from app.schemas.alerts.alert import AlertCreate
from app.schemas.purchase.purchase_order_schema import PurchaseOrderCreate, PurchaseOrderItemCreate, ReceivedItem
from app.services.alerts.alert_service import AlertService, low_stock_severity
from app.services.inventory.inventory_ledger import InventoryLedger
from app.services.purchase.purchase_order_service import PurchaseOrderService

MANAGER = PermissionChecker.from_roles(["MANAGER"])


async def alerts_of(db, alert_type=None):
    query = select(Alert).order_by(Alert.id).execution_options(populate_existing=True)
    if alert_type is not None:
        query = query.where(Alert.alert_type == alert_type)
    return (await db.execute(query)).scalars().all()


async def ordered_po(db, catalog, expected_delivery_date):
    service = PurchaseOrderService(db)
    order = await service.create_purchase_order(
        PurchaseOrderCreate(
            supplier_id=catalog.acme_id,
            warehouse_id=catalog.main_id,
            order_date=date.today(),
            expected_delivery_date=expected_delivery_date,
            items=[PurchaseOrderItemCreate(product_id=catalog.widget_id, quantity_ordered=10, unit_price=Decimal("2.50"))],
        ),
        2, MANAGER,
    )
    for status in (PurchaseOrderStatus.SUBMITTED, PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.ORDERED):
        order = await service.transition(order.id, status, 2, MANAGER)
    return order


@pytest.mark.parametrize(
    "available, reorder_point, severity, priority",
    [
        (0, 10, AlertSeverity.CRITICAL, AlertPriority.URGENT),
        (2, 10, AlertSeverity.HIGH, AlertPriority.HIGH),
        (5, 10, AlertSeverity.MEDIUM, AlertPriority.HIGH),
        (9, 10, AlertSeverity.LOW, AlertPriority.NORMAL),
    ],
)
def test_low_stock_severity(available, reorder_point, severity, priority):
    assert low_stock_severity(available, reorder_point) == (severity, priority)


async def test_stock_alerts_follow_the_record(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 5)

    low = await alerts_of(db, AlertType.LOW_STOCK)
    assert len(low) == 1
    assert low[0].severity == AlertSeverity.MEDIUM
    assert low[0].reference_type == AlertReferenceType.INVENTORY
    assert "WID-001" in low[0].title

    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.OUT, 5)

    low = await alerts_of(db, AlertType.LOW_STOCK)
    out = await alerts_of(db, AlertType.OUT_OF_STOCK)
    assert low[0].status == AlertStatus.RESOLVED
    assert len(out) == 1
    assert out[0].status == AlertStatus.ACTIVE
    assert out[0].severity == AlertSeverity.CRITICAL
    assert out[0].priority == AlertPriority.URGENT


async def test_untracked_product_never_alerts(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.gizmo_id, catalog.main_id, StockMovementType.IN, 1)
    await ledger.apply_movement(catalog.gizmo_id, catalog.main_id, StockMovementType.OUT, 1)

    assert await alerts_of(db) == []


async def test_reservation_can_trigger_low_stock(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.IN, 20)
    assert await alerts_of(db) == []

    await ledger.reserve(catalog.gadget_id, catalog.main_id, 16)

    assert [a.alert_type for a in await alerts_of(db)] == [AlertType.LOW_STOCK]


async def test_acknowledged_alert_is_not_duplicated(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 3)
    alert_id = (await alerts_of(db))[0].id

    await AlertService(db).update_status(alert_id, AlertStatus.ACKNOWLEDGED, actor_id=3)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.OUT, 1)

    alerts = await alerts_of(db)
    assert len(alerts) == 1
    assert alerts[0].status == AlertStatus.ACKNOWLEDGED
    assert alerts[0].acknowledged_by == 3


async def test_status_lifecycle(db, catalog):
    service = AlertService(db)
    alert = await service.create_alert(AlertCreate(title="Scanner offline", message="Dock 3 scanner is offline"), actor_id=2)
    alert_id = alert.id
    assert alert.alert_type == AlertType.SYSTEM_ALERT
    assert alert.status == AlertStatus.ACTIVE

    acknowledged = await service.update_status(alert_id, AlertStatus.ACKNOWLEDGED, actor_id=3)
    assert acknowledged.acknowledged_at is not None

    resolved = await service.update_status(alert_id, AlertStatus.RESOLVED, actor_id=2, notes="Replaced cable")
    assert resolved.resolved_by == 2
    assert resolved.notes == "Replaced cable"

    with pytest.raises(InvalidTransitionError):
        await service.update_status(alert_id, AlertStatus.ACKNOWLEDGED, actor_id=3)
    with pytest.raises(NotFoundError):
        await service.update_status(alert_id + 100, AlertStatus.DISMISSED)


async def test_manual_alert_with_same_reference_returns_open_alert(db, catalog):
    service = AlertService(db)
    first = await service.create_alert(AlertCreate(title="Audit", message="Cycle count due", reference_id=42))
    second = await service.create_alert(AlertCreate(title="Audit again", message="Cycle count due", reference_id=42))

    assert second.id == first.id
    assert len(await alerts_of(db)) == 1


async def test_scan_raises_due_and_overdue_alerts(db, catalog):
    expected = date.today() + timedelta(days=5)
    order = await ordered_po(db, catalog, expected)
    po_id = order.id
    service = AlertService(db)

    due = await service.scan(today=expected)
    assert due.raised == 1
    [due_alert] = await alerts_of(db, AlertType.PURCHASE_ORDER_DUE)
    assert due_alert.reference_id == po_id
    assert due_alert.severity == AlertSeverity.HIGH

    overdue = await service.scan(today=expected + timedelta(days=2))
    assert overdue.raised == 1
    assert overdue.resolved == 1
    [overdue_alert] = await alerts_of(db, AlertType.PURCHASE_ORDER_OVERDUE)
    assert overdue_alert.status == AlertStatus.ACTIVE
    assert overdue_alert.severity == AlertSeverity.CRITICAL
    assert "2 day(s) overdue" in overdue_alert.message

    again = await service.scan(today=expected + timedelta(days=3))
    assert again.raised == 0


async def test_full_receipt_resolves_overdue_alert(db, catalog):
    expected = date.today() + timedelta(days=1)
    order = await ordered_po(db, catalog, expected)
    po_id = order.id
    item_id = order.items[0].id
    await AlertService(db).scan(today=expected + timedelta(days=1))

    await PurchaseOrderService(db).receive(
        po_id, [ReceivedItem(item_id=item_id, quantity_received=10)], 3, PermissionChecker.from_roles(["STAFF"]),
        receipt_reference="GRN-1",
    )

    [overdue_alert] = await alerts_of(db, AlertType.PURCHASE_ORDER_OVERDUE)
    assert overdue_alert.status == AlertStatus.RESOLVED
    assert "Auto-resolved" in overdue_alert.notes


async def test_scan_resolves_alerts_for_untracked_products(db, catalog):
    await InventoryLedger(db).apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 4)
    product = await db.get(Product, catalog.widget_id)
    product.reorder_point = 0
    await db.commit()

    result = await AlertService(db).scan()

    assert result.resolved == 1
    assert result.inventory_checked == 1
    assert (await alerts_of(db))[0].status == AlertStatus.RESOLVED


async def test_listing_and_summary(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 2)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.IN, 1)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.OUT, 1)
    service = AlertService(db)
    widget_alert = (await service.get_alerts(alert_type=AlertType.LOW_STOCK, status=AlertStatus.ACTIVE))["data"][0]
    await service.update_status(widget_alert.id, AlertStatus.ACKNOWLEDGED)

    summary = await service.get_alert_summary()

    assert summary.active == 1
    assert summary.acknowledged == 1
    assert summary.unresolved == 2
    assert summary.critical == 1
    assert summary.urgent == 1

    page = await service.get_alerts(status=AlertStatus.ACTIVE)
    assert page["count"] == 1
    assert page["data"][0].alert_type == AlertType.OUT_OF_STOCK
