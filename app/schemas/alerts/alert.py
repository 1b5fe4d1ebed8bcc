from typing import Optional
from datetime import datetime
from pydantic import BaseModel, validator
from app.models.shared.enums import AlertType, AlertSeverity, AlertPriority, AlertStatus, AlertReferenceType

class AlertCreate(BaseModel):
    """Manually raised system alert"""
    title: str
    message: str
    severity: AlertSeverity = AlertSeverity.MEDIUM
    priority: AlertPriority = AlertPriority.NORMAL
    reference_id: Optional[int] = None
    notes: Optional[str] = None

    @validator('title', 'message')
    def validate_text(cls, v):
        if not v or not v.strip():
            raise ValueError('Title and message are required')
        return v.strip()

class AlertStatusUpdate(BaseModel):
    status: AlertStatus
    notes: Optional[str] = None

class AlertResponse(BaseModel):
    id: int
    alert_type: AlertType
    severity: AlertSeverity
    priority: AlertPriority
    status: AlertStatus
    title: str
    message: str
    reference_type: AlertReferenceType
    reference_id: Optional[int] = None
    triggered_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class AlertSummary(BaseModel):
    active: int
    acknowledged: int
    unresolved: int
    critical: int
    urgent: int

class AlertScanResult(BaseModel):
    raised: int
    resolved: int
    inventory_checked: int
    orders_checked: int
