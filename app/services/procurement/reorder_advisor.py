# app/services/procurement/reorder_advisor.py
import logging
from typing import Optional, List, Dict, Tuple, Iterable
from datetime import date
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from fastapi import HTTPException

from app.core.exceptions import NotFoundError, wrap_unexpected
from app.models.inventory.inventory_record import InventoryRecord
from app.models.inventory.product import Product
from app.models.organization.warehouse import Warehouse
from app.models.purchase.product_supplier import ProductSupplier
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.purchase.supplier import Supplier
from app.models.shared.enums import PurchaseOrderStatus
from app.schemas.procurement.reorder import ReorderSuggestion, ReorderSuggestionList

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
SUCCESSFUL_PO_STATUSES = (PurchaseOrderStatus.FULLY_RECEIVED, PurchaseOrderStatus.CLOSED)


def suggested_quantity(current_stock: int, reorder_point: int, reorder_quantity: int) -> int:
    """
    Quantity to order for a pair at or below its reorder point.

    Normally the reorder quantity; an empty shelf also covers the reorder point.
    The result always lifts the pair above its reorder point once received.
    """
    reorder_point = reorder_point or 0
    reorder_quantity = reorder_quantity or 0
    if reorder_point == 0 and reorder_quantity == 0:
        return 0
    if current_stock == 0:
        quantity = (reorder_point - current_stock) + reorder_quantity
    else:
        quantity = reorder_quantity
    return max(quantity, reorder_point - current_stock + 1)


class SupplierQuote:
    __slots__ = ("supplier_id", "supplier_name", "unit_price", "lead_time_days", "last_success")

    def __init__(self, supplier: Supplier, unit_price: Decimal, lead_time_days: Optional[int]):
        self.supplier_id = supplier.id
        self.supplier_name = supplier.name
        self.unit_price = Decimal(str(unit_price))
        self.lead_time_days = lead_time_days
        self.last_success: Optional[Tuple[date, int]] = None

    def rank(self):
        if self.last_success is None:
            return (self.unit_price, 1, 0, 0, self.supplier_id)
        success_date, po_id = self.last_success
        return (self.unit_price, 0, -success_date.toordinal(), -po_id, self.supplier_id)


class ReorderAdvisor:
    """Read-only: turns low inventory into priced reorder suggestions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _quotes(self, product_ids: Iterable[int]) -> Dict[int, List[SupplierQuote]]:
        """Price per active supplier for each product: price list first, then last PO line"""
        product_ids = sorted(set(product_ids))
        quotes: Dict[int, Dict[int, SupplierQuote]] = {product_id: {} for product_id in product_ids}
        if not product_ids:
            return {}

        active_supplier = and_(Supplier.is_active == True, Supplier.is_deleted == False)

        price_list = await self.db.execute(
            select(ProductSupplier, Supplier)
            .join(Supplier, Supplier.id == ProductSupplier.supplier_id)
            .where(
                and_(
                    ProductSupplier.product_id.in_(product_ids),
                    ProductSupplier.is_deleted == False,
                    active_supplier
                )
            )
        )
        for price, supplier in price_list.all():
            quotes[price.product_id][supplier.id] = SupplierQuote(supplier, price.unit_cost, price.lead_time_days)

        history = await self.db.execute(
            select(PurchaseOrderItem, PurchaseOrder, Supplier)
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.purchase_order_id)
            .join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
            .where(
                and_(
                    PurchaseOrderItem.product_id.in_(product_ids),
                    PurchaseOrder.status != PurchaseOrderStatus.CANCELLED,
                    PurchaseOrder.is_deleted == False,
                    active_supplier
                )
            )
            .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc(), PurchaseOrderItem.id.desc())
        )
        for item, order, supplier in history.all():
            by_supplier = quotes[item.product_id]
            quote = by_supplier.get(supplier.id)
            if quote is None:
                # newest line wins since rows arrive newest first
                quote = SupplierQuote(supplier, item.unit_price, None)
                by_supplier[supplier.id] = quote
            if (
                quote.last_success is None
                and order.status in SUCCESSFUL_PO_STATUSES
                and item.quantity_received > 0
            ):
                quote.last_success = (order.order_date, order.id)

        return {
            product_id: sorted(by_supplier.values(), key=lambda quote: quote.rank())
            for product_id, by_supplier in quotes.items()
        }

    def _build(
        self,
        product: Product,
        warehouse: Warehouse,
        current_stock: int,
        quotes: List[SupplierQuote],
    ) -> Optional[ReorderSuggestion]:
        quantity = suggested_quantity(current_stock, product.reorder_point, product.reorder_quantity)
        if quantity <= 0:
            return None

        best = quotes[0] if quotes else None
        return ReorderSuggestion(
            product_id=product.id,
            product_sku=product.sku,
            product_name=product.name,
            warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
            current_stock=current_stock,
            reorder_point=product.reorder_point,
            reorder_quantity=product.reorder_quantity,
            suggested_quantity=quantity,
            urgency=product.reorder_point - current_stock,
            supplier_id=best.supplier_id if best else None,
            supplier_name=best.supplier_name if best else None,
            unit_price=best.unit_price if best else None,
            estimated_cost=(best.unit_price * quantity).quantize(CENTS) if best else None,
            lead_time_days=best.lead_time_days if best else None,
        )

    @staticmethod
    def _order(suggestions: List[ReorderSuggestion]) -> List[ReorderSuggestion]:
        return sorted(suggestions, key=lambda s: (-s.urgency, s.product_id, s.warehouse_id))

    async def compute_suggestions(
        self,
        warehouse_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> List[ReorderSuggestion]:
        """Suggestions for every active pair at or below its reorder point, most urgent first"""
        try:
            conditions = [
                InventoryRecord.is_deleted == False,
                Product.is_active == True,
                Product.is_deleted == False,
                Warehouse.is_active == True,
                Warehouse.is_deleted == False,
                InventoryRecord.quantity_available <= Product.reorder_point,
            ]
            if warehouse_id is not None:
                conditions.append(InventoryRecord.warehouse_id == warehouse_id)
            if product_id is not None:
                conditions.append(InventoryRecord.product_id == product_id)

            result = await self.db.execute(
                select(InventoryRecord, Product, Warehouse)
                .join(Product, Product.id == InventoryRecord.product_id)
                .join(Warehouse, Warehouse.id == InventoryRecord.warehouse_id)
                .where(and_(*conditions))
            )
            rows = result.all()
            quotes = await self._quotes(product.id for _, product, _ in rows)

            suggestions = []
            for record, product, warehouse in rows:
                suggestion = self._build(product, warehouse, record.quantity_available, quotes.get(product.id, []))
                if suggestion is not None:
                    suggestions.append(suggestion)

            suggestions = self._order(suggestions)
            logger.info(
                f"Computed {len(suggestions)} reorder suggestion(s) "
                f"(warehouse={warehouse_id}, product={product_id})"
            )
            return suggestions

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error computing reorder suggestions: {str(e)}")
            raise wrap_unexpected(e, "Failed to compute reorder suggestions")

    async def suggest_for(self, product_id: int, warehouse_id: int) -> Optional[ReorderSuggestion]:
        """Evaluate one pair; a pair with no inventory row counts as empty"""
        product = (await self.db.execute(
            select(Product).where(
                and_(Product.id == product_id, Product.is_active == True, Product.is_deleted == False)
            )
        )).scalar_one_or_none()
        if not product:
            raise NotFoundError(f"Product {product_id} not found or inactive")

        warehouse = (await self.db.execute(
            select(Warehouse).where(
                and_(Warehouse.id == warehouse_id, Warehouse.is_active == True, Warehouse.is_deleted == False)
            )
        )).scalar_one_or_none()
        if not warehouse:
            raise NotFoundError(f"Warehouse {warehouse_id} not found or inactive")

        record = (await self.db.execute(
            select(InventoryRecord).where(
                and_(
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.warehouse_id == warehouse_id
                )
            )
        )).scalar_one_or_none()
        current = record.quantity_available if record is not None else 0
        if current > product.reorder_point:
            return None

        quotes = await self._quotes([product_id])
        return self._build(product, warehouse, current, quotes.get(product_id, []))

    @staticmethod
    def summarize(suggestions: List[ReorderSuggestion]) -> ReorderSuggestionList:
        priced = [s for s in suggestions if s.estimated_cost is not None]
        total = sum((s.estimated_cost for s in priced), Decimal("0"))
        return ReorderSuggestionList(
            count=len(suggestions),
            priced_count=len(priced),
            unpriced_count=len(suggestions) - len(priced),
            total_estimated_cost=total.quantize(CENTS),
            suggestions=suggestions,
        )
