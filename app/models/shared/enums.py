from enum import Enum

class UnitType(str, Enum):
    PCS = "PCS"        # Piece
    KG = "KG"          # Kilogram
    G = "G"            # Gram
    L = "L"            # Liter
    ML = "ML"          # Milliliter
    M = "M"            # Meter
    BOX = "BOX"
    CARTON = "CARTON"
    PACK = "PACK"
    DOZEN = "DOZEN"

class StockMovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"

class StockReferenceType(str, Enum):
    PURCHASE_ORDER = "PURCHASE_ORDER"
    SALE_ORDER = "SALE_ORDER"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    MANUAL = "MANUAL"

class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"

class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"

class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    PURCHASE_ORDER_DUE = "PURCHASE_ORDER_DUE"
    PURCHASE_ORDER_OVERDUE = "PURCHASE_ORDER_OVERDUE"
    INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"
    SYSTEM_ALERT = "SYSTEM_ALERT"

class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

class AlertPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"

class AlertReferenceType(str, Enum):
    INVENTORY = "INVENTORY"
    STOCK_MOVEMENT = "STOCK_MOVEMENT"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    SYSTEM = "SYSTEM"
