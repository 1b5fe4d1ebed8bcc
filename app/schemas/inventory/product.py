from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, validator
from app.models.shared.enums import UnitType
from app.schemas.inventory.category import CategoryResponse

class ProductBase(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    unit_of_measure: UnitType = UnitType.PCS
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    reorder_point: int = 0
    reorder_quantity: int = 0

    @validator('sku')
    def validate_sku(cls, v):
        if not v or not v.strip():
            raise ValueError('SKU is required')
        return v.strip().upper()

    @validator('reorder_point', 'reorder_quantity')
    def validate_reorder_settings(cls, v):
        if v < 0:
            raise ValueError('Reorder settings cannot be negative')
        return v

    @validator('cost_price', 'selling_price')
    def validate_prices(cls, v):
        if v is not None and v < 0:
            raise ValueError('Prices cannot be negative')
        return v

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    unit_of_measure: Optional[UnitType] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    reorder_point: Optional[int] = None
    reorder_quantity: Optional[int] = None
    is_active: Optional[bool] = None

    @validator('sku')
    def validate_sku(cls, v):
        if v is not None:
            if not v.strip():
                raise ValueError('SKU cannot be blank')
            return v.strip().upper()
        return v

    @validator('reorder_point', 'reorder_quantity')
    def validate_reorder_settings(cls, v):
        if v is not None and v < 0:
            raise ValueError('Reorder settings cannot be negative')
        return v

class ProductInfo(BaseModel):
    id: int
    sku: str
    name: str

    class Config:
        from_attributes = True

class ProductResponse(ProductBase):
    id: int
    is_active: bool
    category: Optional[CategoryResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
