# app/services/procurement/procurement_orchestrator.py
import logging
from collections import OrderedDict
from typing import List, Dict, Optional, Set, Tuple
from datetime import date, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from fastapi import HTTPException

from app.auth.permissions import PermissionChecker
from app.core.config import settings
from app.models.inventory.product import Product
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.shared.enums import PurchaseOrderStatus
from app.schemas.procurement.reorder import (
    ReorderSuggestion,
    ProcurementRunResult,
    SkippedSuggestion,
    ProcurementFailure,
)
from app.schemas.purchase.purchase_order_schema import PurchaseOrderCreate, PurchaseOrderItemCreate
from app.services.procurement.reorder_advisor import ReorderAdvisor
from app.services.purchase.purchase_order_service import PurchaseOrderService, OPEN_STATUSES

logger = logging.getLogger(__name__)

AUTO_SUBMIT_NOTE = "Submitted by automated procurement"


class ProcurementOrchestrator:
    """
    Turns priced reorder suggestions into submitted purchase orders.

    Suggestions are grouped per (supplier, warehouse) and every group runs in
    its own transaction. The group's inventory rows are locked in product id
    order before the open-order check, so two concurrent runs cannot both
    order the same shortage. When a group fails it is retried one product at
    a time, so a single bad product is reported without blocking the rest.
    Stateless between calls.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.advisor = ReorderAdvisor(db)
        self.purchase_orders = PurchaseOrderService(db)
        self.ledger = self.purchase_orders.ledger
        self.checker = PermissionChecker.system()
        self.actor_id = settings.SYSTEM_USER_ID

    async def run_cycle(self, warehouse_id: Optional[int] = None) -> ProcurementRunResult:
        suggestions = await self.advisor.compute_suggestions(warehouse_id=warehouse_id)
        logger.info(f"🔄 Procurement cycle started with {len(suggestions)} suggestion(s)")
        result = await self._process(suggestions)
        logger.info(
            f"✅ Procurement cycle finished: {len(result.orders_created)} created, "
            f"{len(result.orders_updated)} updated, {result.lines_added} line(s), "
            f"{len(result.skipped)} skipped, {len(result.failures)} failed"
        )
        return result

    async def run_for_product(self, product_id: int, warehouse_id: int) -> ProcurementRunResult:
        suggestion = await self.advisor.suggest_for(product_id, warehouse_id)
        if suggestion is None:
            await self.db.rollback()
            return ProcurementRunResult(
                suggestions_evaluated=0,
                skipped=[SkippedSuggestion(
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    reason="Stock is above the reorder point",
                )],
            )
        return await self._process([suggestion])

    async def _process(self, suggestions: List[ReorderSuggestion]) -> ProcurementRunResult:
        result = ProcurementRunResult(suggestions_evaluated=len(suggestions))
        groups: Dict[Tuple[int, int], List[ReorderSuggestion]] = OrderedDict()

        for suggestion in suggestions:
            if not suggestion.is_orderable:
                result.skipped.append(SkippedSuggestion(
                    product_id=suggestion.product_id,
                    warehouse_id=suggestion.warehouse_id,
                    reason="No supplier price available",
                ))
                continue
            groups.setdefault((suggestion.supplier_id, suggestion.warehouse_id), []).append(suggestion)

        # Release the advisor's read transaction before taking row locks
        await self.db.rollback()

        for (supplier_id, warehouse_id), group in sorted(groups.items()):
            outcome = await self._try_group(supplier_id, warehouse_id, group, result)
            if outcome is None and len(group) > 1:
                logger.warning(
                    f"⚠️ Retrying supplier {supplier_id} / warehouse {warehouse_id} one product at a time"
                )
                for suggestion in group:
                    await self._try_group(supplier_id, warehouse_id, [suggestion], result)
        return result

    async def _try_group(
        self,
        supplier_id: int,
        warehouse_id: int,
        group: List[ReorderSuggestion],
        result: ProcurementRunResult,
    ) -> Optional[ProcurementRunResult]:
        """Run one group in its own transaction; merge its outcome into ``result`` only on success"""
        try:
            outcome = await self._process_group(supplier_id, warehouse_id, group)
        except Exception as e:
            await self.db.rollback()
            reason = e.detail if isinstance(e, HTTPException) else str(e)
            product_ids = sorted(s.product_id for s in group)
            logger.error(
                f"❌ Procurement failed for supplier {supplier_id} / warehouse {warehouse_id}, "
                f"product(s) {product_ids}: {reason}"
            )
            if len(group) == 1:
                result.failures.append(ProcurementFailure(
                    supplier_id=supplier_id,
                    warehouse_id=warehouse_id,
                    product_ids=product_ids,
                    reason=str(reason),
                ))
            return None

        result.orders_created.extend(outcome.orders_created)
        result.orders_updated.extend(outcome.orders_updated)
        result.lines_added += outcome.lines_added
        result.skipped.extend(outcome.skipped)
        result.failures.extend(outcome.failures)
        return outcome

    async def _active_product_ids(self, product_ids: List[int]) -> Set[int]:
        rows = await self.db.execute(
            select(Product.id).where(
                and_(
                    Product.id.in_(product_ids),
                    Product.is_active == True,
                    Product.is_deleted == False
                )
            )
        )
        return set(rows.scalars().all())

    async def _open_orders(self, warehouse_id: int, product_ids: List[int]) -> Dict[int, str]:
        """Open PO number per product for the warehouse"""
        rows = await self.db.execute(
            select(PurchaseOrderItem.product_id, PurchaseOrder.po_number)
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.purchase_order_id)
            .where(
                and_(
                    PurchaseOrder.warehouse_id == warehouse_id,
                    PurchaseOrder.status.in_(OPEN_STATUSES),
                    PurchaseOrder.is_deleted == False,
                    PurchaseOrderItem.product_id.in_(product_ids)
                )
            )
            .order_by(PurchaseOrder.id)
        )
        open_orders = {}
        for product_id, po_number in rows.all():
            open_orders.setdefault(product_id, po_number)
        return open_orders

    async def _oldest_draft(self, supplier_id: int, warehouse_id: int):
        result = await self.db.execute(
            select(PurchaseOrder.id)
            .where(
                and_(
                    PurchaseOrder.supplier_id == supplier_id,
                    PurchaseOrder.warehouse_id == warehouse_id,
                    PurchaseOrder.status == PurchaseOrderStatus.DRAFT,
                    PurchaseOrder.is_deleted == False
                )
            )
            .order_by(PurchaseOrder.created_at, PurchaseOrder.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _process_group(
        self,
        supplier_id: int,
        warehouse_id: int,
        group: List[ReorderSuggestion],
    ) -> ProcurementRunResult:
        result = ProcurementRunResult()
        group = sorted(group, key=lambda s: s.product_id)

        # Products deactivated since the suggestion was computed fail on their own
        active_ids = await self._active_product_ids([s.product_id for s in group])
        orderable = []
        for suggestion in group:
            if suggestion.product_id not in active_ids:
                result.failures.append(ProcurementFailure(
                    supplier_id=supplier_id,
                    warehouse_id=warehouse_id,
                    product_ids=[suggestion.product_id],
                    reason=f"Product {suggestion.product_id} not found or inactive",
                ))
                logger.warning(f"⚠️ Product {suggestion.product_id} is no longer active, not ordering it")
                continue
            record = await self.ledger.lock_record(suggestion.product_id, warehouse_id)
            if record.quantity_available > suggestion.reorder_point:
                result.skipped.append(SkippedSuggestion(
                    product_id=suggestion.product_id,
                    warehouse_id=warehouse_id,
                    reason="Stock is above the reorder point",
                ))
                continue
            orderable.append(suggestion)

        open_orders = await self._open_orders(warehouse_id, [s.product_id for s in orderable]) if orderable else {}
        lines = []
        for suggestion in orderable:
            po_number = open_orders.get(suggestion.product_id)
            if po_number:
                result.skipped.append(SkippedSuggestion(
                    product_id=suggestion.product_id,
                    warehouse_id=warehouse_id,
                    reason=f"Open purchase order {po_number} already covers this product",
                ))
                continue
            lines.append(suggestion)

        if not lines:
            await self.db.commit()
            return result

        items = [
            PurchaseOrderItemCreate(
                product_id=suggestion.product_id,
                quantity_ordered=suggestion.suggested_quantity,
                unit_price=suggestion.unit_price,
            )
            for suggestion in lines
        ]

        draft_id = await self._oldest_draft(supplier_id, warehouse_id)
        if draft_id is not None:
            order = await self.purchase_orders.add_items(
                draft_id, items, self.actor_id, self.checker, commit=False
            )
            created = False
        else:
            lead_times = [s.lead_time_days for s in lines if s.lead_time_days is not None]
            lead_time = max(lead_times) if lead_times else settings.AUTO_PO_LEAD_TIME_DAYS
            skus = ", ".join(s.product_sku for s in lines)
            order = await self.purchase_orders.create_purchase_order(
                PurchaseOrderCreate(
                    supplier_id=supplier_id,
                    warehouse_id=warehouse_id,
                    order_date=date.today(),
                    expected_delivery_date=date.today() + timedelta(days=lead_time),
                    notes=f"Automatically generated PO for low stock item(s): {skus}",
                    items=items,
                ),
                self.actor_id,
                self.checker,
                commit=False,
            )
            created = True

        order = await self.purchase_orders.transition(
            order.id,
            PurchaseOrderStatus.SUBMITTED,
            self.actor_id,
            self.checker,
            notes=AUTO_SUBMIT_NOTE,
            commit=False,
        )
        await self.db.commit()

        if created:
            result.orders_created.append(order.po_number)
        else:
            result.orders_updated.append(order.po_number)
        result.lines_added += len(lines)
        logger.info(
            f"🧾 {'Created' if created else 'Extended'} {order.po_number} for supplier {supplier_id} / "
            f"warehouse {warehouse_id} with {len(lines)} line(s) and submitted it"
        )
        return result
