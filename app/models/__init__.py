from app.models.inventory.category import Category
from app.models.inventory.product import Product
from app.models.inventory.inventory_record import InventoryRecord
from app.models.inventory.stock_movement import StockMovement
from app.models.organization.warehouse import Warehouse
from app.models.purchase.supplier import Supplier
from app.models.purchase.product_supplier import ProductSupplier
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.alerts.alert import Alert
