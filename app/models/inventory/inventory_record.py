from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import BaseModel

class InventoryRecord(BaseModel):
    __tablename__ = 'inventory_records'

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouses.id'), nullable=False)
    quantity_on_hand = Column(Integer, nullable=False, default=0)
    quantity_reserved = Column(Integer, nullable=False, default=0)
    last_updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_records_product_warehouse'),
        CheckConstraint('quantity_on_hand >= 0', name='ck_inventory_records_on_hand'),
        CheckConstraint('quantity_reserved >= 0', name='ck_inventory_records_reserved'),
        CheckConstraint('quantity_reserved <= quantity_on_hand', name='ck_inventory_records_available'),
    )

    # Relationships
    product = relationship("Product", back_populates="inventory_records")
    warehouse = relationship("Warehouse", back_populates="inventory_records")

    @hybrid_property
    def quantity_available(self):
        return self.quantity_on_hand - self.quantity_reserved
