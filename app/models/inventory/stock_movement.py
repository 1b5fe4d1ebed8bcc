from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import BaseModel
from app.models.shared.enums import StockMovementType, StockReferenceType

class StockMovement(BaseModel):
    """Append-only ledger entry; never updated after insert."""
    __tablename__ = 'stock_movements'

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey('warehouses.id'), nullable=False, index=True)
    movement_type = Column(SQLEnum(StockMovementType), nullable=False)
    quantity = Column(Integer, nullable=False)
    reference_type = Column(SQLEnum(StockReferenceType), nullable=False, default=StockReferenceType.MANUAL)
    reference_id = Column(String(100))
    notes = Column(Text)
    moved_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('reference_type', 'reference_id', name='uq_stock_movements_reference'),
        CheckConstraint('quantity > 0', name='ck_stock_movements_quantity'),
    )

    # Relationships
    product = relationship("Product", back_populates="stock_movements")
    warehouse = relationship("Warehouse", back_populates="stock_movements")
