from sqlalchemy import Boolean, Column, String, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Warehouse(BaseModel):
    __tablename__ = 'warehouses'

    name = Column(String(100), nullable=False)
    code = Column(String(20), unique=True, nullable=False)
    address = Column(Text)
    city = Column(String(50))
    country = Column(String(50))
    phone = Column(String(20))
    email = Column(String(100))
    is_active = Column(Boolean, default=True)

    # Relationships
    inventory_records = relationship("InventoryRecord", back_populates="warehouse")
    stock_movements = relationship("StockMovement", back_populates="warehouse")
    purchase_orders = relationship("PurchaseOrder", back_populates="warehouse")
