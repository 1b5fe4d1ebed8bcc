from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, validator
from app.schemas.inventory.product import ProductInfo

class SupplierBase(BaseModel):
    supplier_code: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    payment_terms: Optional[str] = None

    @validator('supplier_code')
    def validate_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Supplier code is required')
        return v.strip().upper()

class SupplierCreate(SupplierBase):
    pass

class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    payment_terms: Optional[str] = None
    is_active: Optional[bool] = None

class SupplierInfo(BaseModel):
    id: int
    name: str
    supplier_code: str

    class Config:
        from_attributes = True

class SupplierResponse(SupplierBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SupplierPriceUpsert(BaseModel):
    product_id: int
    unit_cost: Decimal
    lead_time_days: Optional[int] = None
    supplier_product_code: Optional[str] = None

    @validator('unit_cost')
    def validate_unit_cost(cls, v):
        if v < 0:
            raise ValueError('Unit cost cannot be negative')
        return v

    @validator('lead_time_days')
    def validate_lead_time(cls, v):
        if v is not None and v < 0:
            raise ValueError('Lead time cannot be negative')
        return v

class SupplierPriceResponse(BaseModel):
    id: int
    product_id: int
    supplier_id: int
    unit_cost: Decimal
    lead_time_days: Optional[int] = None
    supplier_product_code: Optional[str] = None
    last_quoted_at: Optional[datetime] = None
    product: Optional[ProductInfo] = None

    class Config:
        from_attributes = True
