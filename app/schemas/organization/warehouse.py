from typing import Optional
from datetime import datetime
from pydantic import BaseModel, validator

class WarehouseBase(BaseModel):
    name: str
    code: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @validator('code')
    def validate_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Warehouse code is required')
        return v.strip().upper()

class WarehouseCreate(WarehouseBase):
    pass

class WarehouseUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None

class WarehouseInfo(BaseModel):
    id: int
    name: str
    code: str

    class Config:
        from_attributes = True

class WarehouseResponse(WarehouseBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
