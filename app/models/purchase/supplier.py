from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Supplier(BaseModel):
    __tablename__ = 'suppliers'

    supplier_code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(100))
    phone = Column(String(20))
    address = Column(Text)
    city = Column(String(50))
    country = Column(String(50))
    payment_terms = Column(String(100))
    is_active = Column(Boolean, default=True)

    # Relationships
    product_suppliers = relationship("ProductSupplier", back_populates="supplier")
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")
