from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum, Index, text
from sqlalchemy.sql import func
from app.db.base import BaseModel
from app.models.shared.enums import AlertType, AlertSeverity, AlertPriority, AlertStatus, AlertReferenceType

class Alert(BaseModel):
    __tablename__ = 'alerts'

    alert_type = Column(SQLEnum(AlertType), nullable=False)
    severity = Column(SQLEnum(AlertSeverity), nullable=False, default=AlertSeverity.MEDIUM)
    priority = Column(SQLEnum(AlertPriority), nullable=False, default=AlertPriority.NORMAL)
    status = Column(SQLEnum(AlertStatus), nullable=False, default=AlertStatus.ACTIVE, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    reference_type = Column(SQLEnum(AlertReferenceType), nullable=False)
    reference_id = Column(Integer)
    triggered_at = Column(DateTime(timezone=True), server_default=func.now())
    acknowledged_at = Column(DateTime(timezone=True))
    acknowledged_by = Column(Integer)  # User ID
    resolved_at = Column(DateTime(timezone=True))
    resolved_by = Column(Integer)  # User ID
    notes = Column(Text)

    # One ACTIVE alert per triggering condition
    __table_args__ = (
        Index(
            'uq_alerts_active_reference',
            'alert_type', 'reference_type', 'reference_id',
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )
