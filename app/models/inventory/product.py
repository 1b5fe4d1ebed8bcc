from sqlalchemy import Column, Integer, String, Boolean, Text, Numeric, ForeignKey, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.shared.enums import UnitType

class Product(BaseModel):
    __tablename__ = 'products'

    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    category_id = Column(Integer, ForeignKey('categories.id'))
    unit_of_measure = Column(SQLEnum(UnitType), nullable=False, default=UnitType.PCS)
    cost_price = Column(Numeric(10, 2))
    selling_price = Column(Numeric(10, 2))
    reorder_point = Column(Integer, nullable=False, default=0)
    reorder_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    __table_args__ = (
        CheckConstraint('reorder_point >= 0', name='ck_products_reorder_point'),
        CheckConstraint('reorder_quantity >= 0', name='ck_products_reorder_quantity'),
    )

    # Relationships
    category = relationship("Category", back_populates="products")
    inventory_records = relationship("InventoryRecord", back_populates="product")
    stock_movements = relationship("StockMovement", back_populates="product")
    product_suppliers = relationship("ProductSupplier", back_populates="product")
    purchase_order_items = relationship("PurchaseOrderItem", back_populates="product")
