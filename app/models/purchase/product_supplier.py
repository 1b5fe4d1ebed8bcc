from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import BaseModel

class ProductSupplier(BaseModel):
    """Supplier price list entry for a product"""
    __tablename__ = 'product_suppliers'

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False)
    supplier_product_code = Column(String(100))
    unit_cost = Column(Numeric(10, 2), nullable=False)
    lead_time_days = Column(Integer)
    last_quoted_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('product_id', 'supplier_id', name='uq_product_suppliers_product_supplier'),
    )

    # Relationships
    product = relationship("Product", back_populates="product_suppliers")
    supplier = relationship("Supplier", back_populates="product_suppliers")
