from typing import Optional
from datetime import datetime
from pydantic import BaseModel, validator, root_validator
from app.models.shared.enums import StockMovementType, StockReferenceType, StockStatus
from app.schemas.inventory.product import ProductInfo
from app.schemas.organization.warehouse import WarehouseInfo

def _positive(v):
    if v is None or v <= 0:
        raise ValueError('Quantity must be a positive integer')
    return v

class StockMovementCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int
    type: StockMovementType
    reference_type: StockReferenceType = StockReferenceType.MANUAL
    reference_id: Optional[str] = None
    notes: Optional[str] = None

    @validator('quantity')
    def validate_quantity(cls, v):
        return _positive(v)

class ReservationRequest(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int

    @validator('quantity')
    def validate_quantity(cls, v):
        return _positive(v)

class TransferRequest(BaseModel):
    product_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: int
    reference_id: Optional[str] = None
    notes: Optional[str] = None

    @validator('quantity')
    def validate_quantity(cls, v):
        return _positive(v)

    @root_validator(skip_on_failure=True)
    def validate_warehouses(cls, values):
        if values.get('from_warehouse_id') == values.get('to_warehouse_id'):
            raise ValueError('Source and destination warehouse must differ')
        return values

class InventoryRecordResponse(BaseModel):
    id: Optional[int] = None
    product_id: int
    warehouse_id: int
    quantity_on_hand: int
    quantity_reserved: int
    quantity_available: int
    reorder_point: Optional[int] = None
    stock_status: Optional[StockStatus] = None
    last_updated_at: Optional[datetime] = None
    product: Optional[ProductInfo] = None
    warehouse: Optional[WarehouseInfo] = None

    class Config:
        from_attributes = True

class StockMovementResponse(BaseModel):
    id: int
    product_id: int
    warehouse_id: int
    movement_type: StockMovementType
    quantity: int
    reference_type: StockReferenceType
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    moved_at: Optional[datetime] = None
    created_by: Optional[int] = None

    class Config:
        from_attributes = True

class TransferResponse(BaseModel):
    source: InventoryRecordResponse
    destination: InventoryRecordResponse

class ReconciliationResponse(BaseModel):
    product_id: int
    warehouse_id: int
    movement_count: int
    replayed_on_hand: int
    recorded_on_hand: int
    consistent: bool
