from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundError
from app.models.inventory.product import Product
from app.models.purchase.product_supplier import ProductSupplier
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.shared.enums import PurchaseOrderStatus, StockMovementType
from app.services.inventory.inventory_ledger import InventoryLedger
from app.services.procurement.reorder_advisor import ReorderAdvisor, suggested_quantity


async def historic_order(session, po_number, supplier_id, warehouse_id, product_id, unit_price,
                         status=PurchaseOrderStatus.FULLY_RECEIVED, order_date=date(2026, 1, 15), received=10):
    order = PurchaseOrder(
        po_number=po_number,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        order_date=order_date,
        status=status,
        total_amount=Decimal(unit_price) * 10,
    )
    order.items.append(PurchaseOrderItem(
        product_id=product_id,
        quantity_ordered=10,
        quantity_received=received,
        unit_price=Decimal(unit_price),
        total_price=Decimal(unit_price) * 10,
    ))
    session.add(order)
    await session.commit()
    return order


@pytest.mark.parametrize(
    "current, reorder_point, reorder_quantity, expected",
    [
        (8, 10, 50, 50),
        (0, 10, 50, 60),
        (10, 10, 5, 5),
        (2, 10, 3, 9),
        (0, 0, 0, 0),
    ],
)
def test_suggested_quantity(current, reorder_point, reorder_quantity, expected):
    assert suggested_quantity(current, reorder_point, reorder_quantity) == expected


async def test_low_stock_suggests_reorder_quantity(db, price_list, stock):
    await stock(price_list.widget_id, price_list.main_id, 8)

    suggestions = await ReorderAdvisor(db).compute_suggestions()

    assert len(suggestions) == 1
    suggestion = suggestions[0]
    assert suggestion.product_id == price_list.widget_id
    assert suggestion.current_stock == 8
    assert suggestion.suggested_quantity == 50
    assert suggestion.urgency == 2
    assert suggestion.supplier_id == price_list.acme_id
    assert suggestion.unit_price == Decimal("2.50")
    assert suggestion.estimated_cost == Decimal("125.00")
    assert suggestion.lead_time_days == 3


async def test_empty_shelf_also_covers_reorder_point(db, price_list, stock):
    await stock(price_list.widget_id, price_list.main_id, 5)
    await InventoryLedger(db).apply_movement(price_list.widget_id, price_list.main_id, StockMovementType.OUT, 5)

    suggestions = await ReorderAdvisor(db).compute_suggestions()

    assert [s.suggested_quantity for s in suggestions] == [60]
    assert suggestions[0].current_stock == 0


async def test_stock_above_reorder_point_yields_nothing(db, price_list, stock):
    await stock(price_list.widget_id, price_list.main_id, 11)
    await stock(price_list.gadget_id, price_list.main_id, 6)

    assert await ReorderAdvisor(db).compute_suggestions() == []


async def test_suggestions_ordered_by_urgency_then_ids(db, price_list, stock):
    await stock(price_list.gadget_id, price_list.east_id, 1)
    await stock(price_list.widget_id, price_list.east_id, 9)
    await stock(price_list.widget_id, price_list.main_id, 6)
    await stock(price_list.gadget_id, price_list.main_id, 1)

    suggestions = await ReorderAdvisor(db).compute_suggestions()

    expected = sorted(
        [
            (price_list.gadget_id, price_list.east_id, 4),
            (price_list.widget_id, price_list.east_id, 1),
            (price_list.widget_id, price_list.main_id, 4),
            (price_list.gadget_id, price_list.main_id, 4),
        ],
        key=lambda row: (-row[2], row[0], row[1]),
    )
    assert [(s.product_id, s.warehouse_id, s.urgency) for s in suggestions] == expected
    assert suggestions[-1].product_id == price_list.widget_id
    assert suggestions[-1].warehouse_id == price_list.east_id


async def test_warehouse_filter(db, price_list, stock):
    await stock(price_list.widget_id, price_list.main_id, 2)
    await stock(price_list.widget_id, price_list.east_id, 2)

    suggestions = await ReorderAdvisor(db).compute_suggestions(warehouse_id=price_list.east_id)

    assert [(s.product_id, s.warehouse_id) for s in suggestions] == [(price_list.widget_id, price_list.east_id)]


async def test_unpriced_product_is_suggested_without_supplier(db, catalog, stock):
    await stock(catalog.widget_id, catalog.main_id, 3)

    suggestions = await ReorderAdvisor(db).compute_suggestions()

    assert len(suggestions) == 1
    assert suggestions[0].supplier_id is None
    assert suggestions[0].estimated_cost is None
    assert not suggestions[0].is_orderable


async def test_untracked_product_is_never_suggested(db, catalog, stock):
    await stock(catalog.gizmo_id, catalog.main_id, 1)
    await InventoryLedger(db).apply_movement(catalog.gizmo_id, catalog.main_id, StockMovementType.OUT, 1)

    assert await ReorderAdvisor(db).compute_suggestions() == []


async def test_last_purchase_price_used_without_price_list(db, session_factory, catalog, stock):
    async with session_factory() as session:
        await historic_order(session, "PO-20260110-001", catalog.beta_id, catalog.main_id, catalog.widget_id, "2.20",
                             order_date=date(2026, 1, 10))
        await historic_order(session, "PO-20260301-001", catalog.beta_id, catalog.main_id, catalog.widget_id, "2.40",
                             status=PurchaseOrderStatus.SUBMITTED, order_date=date(2026, 3, 1), received=0)
        await historic_order(session, "PO-20260401-001", catalog.acme_id, catalog.main_id, catalog.widget_id, "1.00",
                             status=PurchaseOrderStatus.CANCELLED, order_date=date(2026, 4, 1), received=0)
    await stock(catalog.widget_id, catalog.main_id, 4)

    suggestion = (await ReorderAdvisor(db).compute_suggestions())[0]

    assert suggestion.supplier_id == catalog.beta_id
    assert suggestion.unit_price == Decimal("2.40")


async def test_equal_price_prefers_most_recent_successful_supplier(db, session_factory, catalog, stock):
    async with session_factory() as session:
        bolt = Product(sku="BLT-001", name="Bolt", category_id=catalog.category_id, reorder_point=20, reorder_quantity=100)
        session.add(bolt)
        await session.flush()
        session.add_all([
            ProductSupplier(product_id=bolt.id, supplier_id=catalog.acme_id, unit_cost=Decimal("0.10")),
            ProductSupplier(product_id=bolt.id, supplier_id=catalog.beta_id, unit_cost=Decimal("0.10")),
        ])
        await session.commit()
        bolt_id = bolt.id

        await historic_order(session, "PO-20260105-001", catalog.acme_id, catalog.main_id, bolt_id, "0.10",
                             order_date=date(2026, 1, 5))
        await historic_order(session, "PO-20260205-001", catalog.beta_id, catalog.main_id, bolt_id, "0.10",
                             status=PurchaseOrderStatus.CLOSED, order_date=date(2026, 2, 5))
    await stock(bolt_id, catalog.main_id, 5)

    suggestion = (await ReorderAdvisor(db).compute_suggestions(product_id=bolt_id))[0]

    assert suggestion.supplier_id == catalog.beta_id
    assert suggestion.unit_price == Decimal("0.10")


async def test_equal_price_without_history_prefers_lowest_supplier_id(db, session_factory, catalog, stock):
    async with session_factory() as session:
        session.add_all([
            ProductSupplier(product_id=catalog.gadget_id, supplier_id=catalog.beta_id, unit_cost=Decimal("4.00")),
            ProductSupplier(product_id=catalog.gadget_id, supplier_id=catalog.acme_id, unit_cost=Decimal("4.00")),
        ])
        await session.commit()
    await stock(catalog.gadget_id, catalog.main_id, 2)

    suggestion = (await ReorderAdvisor(db).compute_suggestions())[0]

    assert suggestion.supplier_id == min(catalog.acme_id, catalog.beta_id)


async def test_suggest_for_pair_without_record(db, price_list):
    suggestion = await ReorderAdvisor(db).suggest_for(price_list.gadget_id, price_list.east_id)

    assert suggestion.current_stock == 0
    assert suggestion.suggested_quantity == 25
    assert suggestion.supplier_id == price_list.beta_id
    assert suggestion.estimated_cost == Decimal("200.00")
    assert suggestion.lead_time_days == 5


async def test_suggest_for_above_reorder_point_is_none(db, price_list, stock):
    await stock(price_list.gadget_id, price_list.main_id, 30)

    assert await ReorderAdvisor(db).suggest_for(price_list.gadget_id, price_list.main_id) is None


async def test_suggest_for_inactive_product(db, catalog):
    product = await db.get(Product, catalog.widget_id)
    product.is_active = False
    await db.commit()

    with pytest.raises(NotFoundError):
        await ReorderAdvisor(db).suggest_for(catalog.widget_id, catalog.main_id)


async def test_summarize_totals_priced_suggestions(db, session_factory, price_list, stock):
    async with session_factory() as session:
        nut = Product(sku="NUT-001", name="Nut", category_id=price_list.category_id, reorder_point=3, reorder_quantity=10)
        session.add(nut)
        await session.commit()
        nut_id = nut.id
    await stock(price_list.widget_id, price_list.main_id, 8)
    await stock(price_list.gadget_id, price_list.main_id, 5)
    await stock(nut_id, price_list.main_id, 1)

    summary = ReorderAdvisor.summarize(await ReorderAdvisor(db).compute_suggestions())

    assert summary.count == 3
    assert summary.priced_count == 2
    assert summary.unpriced_count == 1
    # widget 50 x 2.50 + gadget 20 x 8.00
    assert summary.total_estimated_cost == Decimal("285.00")
