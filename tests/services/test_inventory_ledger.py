import pytest
from sqlalchemy import select, func

from app.core.exceptions import (
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    InsufficientAvailableError,
)
from app.models.alerts.alert import Alert
from app.models.inventory.product import Product
from app.models.inventory.stock_movement import StockMovement
from app.models.shared.enums import (
    StockMovementType,
    StockReferenceType,
    StockStatus,
    AlertType,
    AlertStatus,
    AlertSeverity,
    AlertPriority,
    AlertReferenceType,
)
from app.services.inventory.inventory_ledger import InventoryLedger, stock_status


async def movement_count(db, product_id, warehouse_id):
    result = await db.execute(
        select(func.count(StockMovement.id)).where(
            StockMovement.product_id == product_id,
            StockMovement.warehouse_id == warehouse_id,
        )
    )
    return result.scalar()


def test_stock_status_rule():
    assert stock_status(0, 10) == StockStatus.OUT_OF_STOCK
    assert stock_status(10, 10) == StockStatus.LOW_STOCK
    assert stock_status(11, 10) == StockStatus.IN_STOCK
    assert stock_status(3, 0) == StockStatus.IN_STOCK


async def test_missing_record_reads_as_zero(db, catalog):
    ledger = InventoryLedger(db)
    snapshot = await ledger.get_record(catalog.widget_id, catalog.main_id)

    assert snapshot.id is None
    assert snapshot.quantity_on_hand == 0
    assert snapshot.quantity_reserved == 0
    assert snapshot.quantity_available == 0
    assert snapshot.stock_status == StockStatus.OUT_OF_STOCK


async def test_inbound_movement_creates_record_and_movement(db, catalog):
    ledger = InventoryLedger(db)
    snapshot = await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 40)

    assert snapshot.quantity_on_hand == 40
    assert snapshot.quantity_available == 40
    assert snapshot.stock_status == StockStatus.IN_STOCK
    assert await movement_count(db, catalog.widget_id, catalog.main_id) == 1


async def test_outbound_beyond_on_hand_is_rejected_without_side_effects(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 3)

    with pytest.raises(InsufficientStockError):
        await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.OUT, 5)

    snapshot = await ledger.get_record(catalog.widget_id, catalog.main_id)
    assert snapshot.quantity_on_hand == 3
    assert await movement_count(db, catalog.widget_id, catalog.main_id) == 1


async def test_outbound_cannot_eat_into_reserved_stock(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 20)
    await ledger.reserve(catalog.widget_id, catalog.main_id, 15)

    with pytest.raises(InsufficientAvailableError):
        await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.OUT, 10)

    snapshot = await ledger.get_record(catalog.widget_id, catalog.main_id)
    assert snapshot.quantity_on_hand == 20
    assert snapshot.quantity_reserved == 15


@pytest.mark.parametrize("quantity", [0, -4, True, 2.5])
async def test_quantity_must_be_a_positive_integer(db, catalog, quantity):
    ledger = InventoryLedger(db)
    with pytest.raises(ValidationError):
        await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, quantity)


async def test_unknown_movement_type_is_a_validation_error(db, catalog):
    ledger = InventoryLedger(db)
    with pytest.raises(ValidationError):
        await ledger.apply_movement(catalog.widget_id, catalog.main_id, "SHRINK", 1)


async def test_inactive_product_is_not_found(db, catalog):
    product = await db.get(Product, catalog.widget_id)
    product.is_active = False
    await db.commit()

    ledger = InventoryLedger(db)
    with pytest.raises(NotFoundError):
        await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 1)


async def test_replayed_reference_is_applied_once(db, catalog):
    ledger = InventoryLedger(db)
    first = await ledger.apply_movement(
        catalog.widget_id, catalog.main_id, StockMovementType.IN, 12,
        reference_type=StockReferenceType.ADJUSTMENT, reference_id="count-2026-10"
    )
    second = await ledger.apply_movement(
        catalog.widget_id, catalog.main_id, StockMovementType.IN, 12,
        reference_type=StockReferenceType.ADJUSTMENT, reference_id="count-2026-10"
    )

    assert first.quantity_on_hand == 12
    assert second.quantity_on_hand == 12
    assert await movement_count(db, catalog.widget_id, catalog.main_id) == 1


async def test_replay_releases_the_transaction(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(
        catalog.widget_id, catalog.main_id, StockMovementType.IN, 12,
        reference_type=StockReferenceType.ADJUSTMENT, reference_id="count-2026-11"
    )
    assert not db.in_transaction()

    snapshot = await ledger.apply_movement(
        catalog.widget_id, catalog.main_id, StockMovementType.IN, 12,
        reference_type=StockReferenceType.ADJUSTMENT, reference_id="count-2026-11"
    )

    assert snapshot.quantity_on_hand == 12
    assert not db.in_transaction()


async def test_adjustment_raises_an_informational_alert_per_movement(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 20)
    await ledger.apply_movement(
        catalog.widget_id, catalog.main_id, StockMovementType.ADJUSTMENT, 3, notes="Found in back room"
    )
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.ADJUSTMENT, 2)

    alerts = (await db.execute(
        select(Alert).where(Alert.alert_type == AlertType.INVENTORY_ADJUSTMENT).order_by(Alert.id)
    )).scalars().all()
    movement_ids = (await db.execute(
        select(StockMovement.id)
        .where(StockMovement.movement_type == StockMovementType.ADJUSTMENT)
        .order_by(StockMovement.id)
    )).scalars().all()

    assert [alert.reference_id for alert in alerts] == movement_ids
    assert all(alert.reference_type == AlertReferenceType.STOCK_MOVEMENT for alert in alerts)
    assert all(alert.status == AlertStatus.ACTIVE for alert in alerts)
    assert {(alert.severity, alert.priority) for alert in alerts} == {(AlertSeverity.LOW, AlertPriority.NORMAL)}
    assert alerts[0].notes == "Found in back room"
    assert "adjusted by +3; 23 now on hand" in alerts[0].message
    assert "25 now on hand" in alerts[1].message


async def test_reserve_and_release(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 30)

    reserved = await ledger.reserve(catalog.widget_id, catalog.main_id, 12)
    assert reserved.quantity_on_hand == 30
    assert reserved.quantity_reserved == 12
    assert reserved.quantity_available == 18

    with pytest.raises(InsufficientAvailableError):
        await ledger.reserve(catalog.widget_id, catalog.main_id, 19)

    released = await ledger.release(catalog.widget_id, catalog.main_id, 5)
    assert released.quantity_reserved == 7
    assert released.quantity_available == 23

    with pytest.raises(ValidationError):
        await ledger.release(catalog.widget_id, catalog.main_id, 8)


async def test_reserve_without_record_has_nothing_available(db, catalog):
    ledger = InventoryLedger(db)
    with pytest.raises(InsufficientAvailableError):
        await ledger.reserve(catalog.gadget_id, catalog.east_id, 1)


async def test_transfer_moves_stock_and_replays_cleanly(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 50)

    result = await ledger.transfer(catalog.widget_id, catalog.main_id, catalog.east_id, 20, reference_id="TR-1")
    assert result.source.quantity_on_hand == 30
    assert result.destination.quantity_on_hand == 20

    again = await ledger.transfer(catalog.widget_id, catalog.main_id, catalog.east_id, 20, reference_id="TR-1")
    assert again.source.quantity_on_hand == 30
    assert again.destination.quantity_on_hand == 20

    for warehouse_id in (catalog.main_id, catalog.east_id):
        reconciliation = await ledger.reconcile(catalog.widget_id, warehouse_id)
        assert reconciliation.consistent


async def test_transfer_to_same_warehouse_is_rejected(db, catalog):
    ledger = InventoryLedger(db)
    with pytest.raises(ValidationError):
        await ledger.transfer(catalog.widget_id, catalog.main_id, catalog.main_id, 1)


async def test_transfer_beyond_source_stock_changes_nothing(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 5)

    with pytest.raises(InsufficientStockError):
        await ledger.transfer(catalog.widget_id, catalog.main_id, catalog.east_id, 6)

    assert (await ledger.get_record(catalog.widget_id, catalog.main_id)).quantity_on_hand == 5
    assert (await ledger.get_record(catalog.widget_id, catalog.east_id)).quantity_on_hand == 0


async def test_movement_history_replays_to_on_hand(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.IN, 40)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.OUT, 15)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.ADJUSTMENT, 3)
    await ledger.transfer(catalog.gadget_id, catalog.main_id, catalog.east_id, 8)
    with pytest.raises(InsufficientStockError):
        await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.OUT, 100)

    reconciliation = await ledger.reconcile(catalog.gadget_id, catalog.main_id)
    assert reconciliation.replayed_on_hand == 20
    assert reconciliation.recorded_on_hand == 20
    assert reconciliation.movement_count == 4
    assert reconciliation.consistent


async def test_low_stock_list_orders_by_urgency(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 8)
    await ledger.apply_movement(catalog.gadget_id, catalog.main_id, StockMovementType.IN, 4)
    await ledger.apply_movement(catalog.gadget_id, catalog.east_id, StockMovementType.IN, 50)

    page = await ledger.list_records(low_stock_only=True)

    assert page["count"] == 2
    assert [(r.product_id, r.warehouse_id) for r in page["data"]] == [
        (catalog.widget_id, catalog.main_id),
        (catalog.gadget_id, catalog.main_id),
    ]


async def test_crossing_reorder_point_raises_and_restock_resolves_alert(db, catalog):
    ledger = InventoryLedger(db)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 30)
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.OUT, 28)

    alerts = (await db.execute(select(Alert))).scalars().all()
    assert len(alerts) == 1
    assert alerts[0].alert_type == AlertType.LOW_STOCK
    assert alerts[0].severity == AlertSeverity.HIGH
    assert alerts[0].status == AlertStatus.ACTIVE

    # still low: no second alert
    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 1)
    assert (await db.execute(select(func.count(Alert.id)))).scalar() == 1

    await ledger.apply_movement(catalog.widget_id, catalog.main_id, StockMovementType.IN, 40)
    alert = (await db.execute(select(Alert).execution_options(populate_existing=True))).scalar_one()
    assert alert.status == AlertStatus.RESOLVED
    assert alert.resolved_at is not None
