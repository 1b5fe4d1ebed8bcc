from typing import Optional, List, Dict
from decimal import Decimal
from pydantic import BaseModel, validator
from datetime import datetime, date
from app.models.shared.enums import PurchaseOrderStatus
from app.schemas.inventory.product import ProductInfo
from app.schemas.organization.warehouse import WarehouseInfo
from app.schemas.purchase.supplier import SupplierInfo

class PurchaseOrderItemBase(BaseModel):
    product_id: int
    quantity_ordered: int
    unit_price: Decimal
    notes: Optional[str] = None

    @validator('quantity_ordered')
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError('Quantity ordered must be positive')
        return v

    @validator('unit_price')
    def validate_unit_price(cls, v):
        if v < 0:
            raise ValueError('Unit price cannot be negative')
        return v

class PurchaseOrderItemCreate(PurchaseOrderItemBase):
    pass

class PurchaseOrderItemResponse(PurchaseOrderItemBase):
    id: int
    purchase_order_id: int
    quantity_received: int
    total_price: Decimal
    remaining_quantity: int
    partially_received: bool
    fully_received: bool
    product: Optional[ProductInfo] = None

    class Config:
        from_attributes = True

class PurchaseOrderBase(BaseModel):
    supplier_id: int
    warehouse_id: int
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None

class PurchaseOrderCreate(PurchaseOrderBase):
    items: List[PurchaseOrderItemCreate]

    @validator('items')
    def validate_items(cls, v):
        if not v:
            raise ValueError('Purchase order must have at least one item')
        return v

class PurchaseOrderUpdate(BaseModel):
    """Draft edits; items, when given, replace the existing lines"""
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[List[PurchaseOrderItemCreate]] = None

    @validator('items')
    def validate_items(cls, v):
        if v is not None and not v:
            raise ValueError('Purchase order must have at least one item')
        return v

class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus
    notes: Optional[str] = None

class ReceivedItem(BaseModel):
    item_id: int
    quantity_received: int
    notes: Optional[str] = None

class ReceiveRequest(BaseModel):
    received_items: List[ReceivedItem]
    receipt_reference: str

    @validator('received_items')
    def validate_received_items(cls, v):
        if not v:
            raise ValueError('At least one received item is required')
        return v

    @validator('receipt_reference')
    def validate_receipt_reference(cls, v):
        if not v.strip():
            raise ValueError('Receipt reference cannot be blank')
        return v.strip()

class PurchaseOrderResponse(PurchaseOrderBase):
    id: int
    po_number: str
    order_date: date
    status: PurchaseOrderStatus
    total_amount: Decimal
    approved_by: Optional[int] = None
    approved_date: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseOrderItemResponse] = []
    supplier: Optional[SupplierInfo] = None
    warehouse: Optional[WarehouseInfo] = None

    class Config:
        from_attributes = True

class PurchaseOrderSummary(BaseModel):
    total_orders: int
    status_counts: Dict[str, int]
    open_orders: int
    open_order_value: Decimal
    overdue_orders: int
    due_today_orders: int
