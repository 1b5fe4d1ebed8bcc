from fastapi import APIRouter
from app.api.v1.endpoints.alerts import alerts
from app.api.v1.endpoints.inventory import categories, products, stock_levels, stock_movements, transfers
from app.api.v1.endpoints.organization import warehouses
from app.api.v1.endpoints.procurement import reorder
from app.api.v1.endpoints.purchase import purchase_orders, suppliers

api_router = APIRouter()

# Organization routes
api_router.include_router(warehouses.router, prefix="/organization/warehouse", tags=["Organization"])

# Inventory routes
api_router.include_router(categories.router, prefix="/inventory/category", tags=["Inventory"])
api_router.include_router(products.router, prefix="/inventory/product", tags=["Inventory"])
api_router.include_router(stock_levels.router, prefix="/inventory/stock-level", tags=["Inventory"])
api_router.include_router(stock_movements.router, prefix="/inventory/stock-movement", tags=["Inventory"])
api_router.include_router(transfers.router, prefix="/inventory/transfer", tags=["Inventory"])

# Purchase routes
api_router.include_router(suppliers.router, prefix="/purchase/supplier", tags=["Purchase"])
api_router.include_router(purchase_orders.router, prefix="/purchase/purchase-order", tags=["Purchase"])

# Procurement routes
api_router.include_router(reorder.router, prefix="/procurement/reorder", tags=["Procurement"])

# Alert routes
api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
