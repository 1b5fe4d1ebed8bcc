from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import require_permission
from app.core.database import get_async_session
from app.schemas.procurement.reorder import (
    ReorderSuggestionList,
    RunForProductRequest,
    ProcurementRunResult,
)
from app.services.procurement.procurement_orchestrator import ProcurementOrchestrator
from app.services.procurement.reorder_advisor import ReorderAdvisor

router = APIRouter()

@router.get("/suggestions", response_model=ReorderSuggestionList)
async def get_reorder_suggestions(
    warehouse_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("procurement", "read"))
):
    """Priced reorder suggestions for everything at or below its reorder point"""
    advisor = ReorderAdvisor(db)
    suggestions = await advisor.compute_suggestions(warehouse_id=warehouse_id, product_id=product_id)
    return advisor.summarize(suggestions)

@router.post("/run-cycle", response_model=ProcurementRunResult)
async def run_reorder_cycle(
    warehouse_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("procurement", "run"))
):
    """Create or extend purchase orders for every priced suggestion and submit them"""
    orchestrator = ProcurementOrchestrator(db)
    return await orchestrator.run_cycle(warehouse_id=warehouse_id)

@router.post("/run-for-product", response_model=ProcurementRunResult)
async def run_for_product(
    request: RunForProductRequest,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("procurement", "run"))
):
    orchestrator = ProcurementOrchestrator(db)
    return await orchestrator.run_for_product(request.product_id, request.warehouse_id)
