from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel

class ReorderSuggestion(BaseModel):
    product_id: int
    product_sku: str
    product_name: str
    warehouse_id: int
    warehouse_name: str
    current_stock: int
    reorder_point: int
    reorder_quantity: int
    suggested_quantity: int
    urgency: int
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    unit_price: Optional[Decimal] = None
    estimated_cost: Optional[Decimal] = None
    lead_time_days: Optional[int] = None

    @property
    def is_orderable(self) -> bool:
        return self.supplier_id is not None and self.unit_price is not None

class ReorderSuggestionList(BaseModel):
    count: int
    priced_count: int
    unpriced_count: int
    total_estimated_cost: Decimal
    suggestions: List[ReorderSuggestion]

class RunForProductRequest(BaseModel):
    product_id: int
    warehouse_id: int

class SkippedSuggestion(BaseModel):
    product_id: int
    warehouse_id: int
    reason: str

class ProcurementFailure(BaseModel):
    supplier_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    product_ids: List[int] = []
    reason: str

class ProcurementRunResult(BaseModel):
    suggestions_evaluated: int = 0
    orders_created: List[str] = []
    orders_updated: List[str] = []
    lines_added: int = 0
    skipped: List[SkippedSuggestion] = []
    failures: List[ProcurementFailure] = []
