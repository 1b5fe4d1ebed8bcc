from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.models.shared.enums import AlertType, AlertSeverity, AlertPriority, AlertStatus, AlertReferenceType
from app.schemas.alerts.alert import (
    AlertCreate,
    AlertResponse,
    AlertStatusUpdate,
    AlertSummary,
    AlertScanResult,
)
from app.schemas.auth.current_user import CurrentUser
from app.schemas.common.pagination import PaginatedResponse
from app.services.alerts.alert_service import AlertService

router = APIRouter()

@router.get("/", response_model=PaginatedResponse[AlertResponse])
async def get_alerts(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    alert_type: Optional[AlertType] = Query(None),
    severity: Optional[AlertSeverity] = Query(None),
    priority: Optional[AlertPriority] = Query(None),
    status: Optional[AlertStatus] = Query(None),
    reference_type: Optional[AlertReferenceType] = Query(None),
    reference_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("alert", "read"))
):
    """Get alerts with filters, newest first"""
    service = AlertService(db)
    return await service.get_alerts(
        page_index=page_index,
        page_size=page_size,
        alert_type=alert_type,
        severity=severity,
        priority=priority,
        status=status,
        reference_type=reference_type,
        reference_id=reference_id
    )

@router.post("/", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    alert_data: AlertCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("alert", "admin"))
):
    """Raise a manual system alert"""
    service = AlertService(db)
    return await service.create_alert(alert_data, current_user.id)

@router.get("/summary", response_model=AlertSummary)
async def get_alert_summary(
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("alert", "read"))
):
    service = AlertService(db)
    return await service.get_alert_summary()

@router.post("/scan", response_model=AlertScanResult)
async def scan_alerts(
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("alert", "admin"))
):
    """Re-evaluate stock and delivery alerts for the whole system"""
    service = AlertService(db)
    return await service.scan()

@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: int,
    db: AsyncSession = Depends(get_async_session),
    _permission = Depends(require_permission("alert", "read"))
):
    service = AlertService(db)
    return await service.get_alert(alert_id)

@router.patch("/{alert_id}/status", response_model=AlertResponse)
async def update_alert_status(
    alert_id: int,
    status_data: AlertStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("alert", "acknowledge"))
):
    """Acknowledge, resolve or dismiss an alert"""
    service = AlertService(db)
    return await service.update_status(alert_id, status_data.status, current_user.id, status_data.notes)
