from sqlalchemy import Column, Integer, Text, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class PurchaseOrderItem(BaseModel):
    __tablename__ = 'purchase_order_items'

    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint('quantity_ordered > 0', name='ck_po_items_quantity_ordered'),
        CheckConstraint(
            'quantity_received >= 0 AND quantity_received <= quantity_ordered',
            name='ck_po_items_quantity_received',
        ),
        CheckConstraint('unit_price >= 0', name='ck_po_items_unit_price'),
    )

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product", back_populates="purchase_order_items")

    @property
    def remaining_quantity(self) -> int:
        return self.quantity_ordered - (self.quantity_received or 0)

    @property
    def partially_received(self) -> bool:
        return 0 < (self.quantity_received or 0) < self.quantity_ordered

    @property
    def fully_received(self) -> bool:
        return (self.quantity_received or 0) == self.quantity_ordered
