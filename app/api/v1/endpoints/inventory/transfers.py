from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.dependencies import get_current_user, require_permission
from app.core.database import get_async_session
from app.schemas.auth.current_user import CurrentUser
from app.schemas.inventory.inventory_record import TransferRequest, TransferResponse
from app.services.inventory.inventory_ledger import InventoryLedger

router = APIRouter()

@router.post("/", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    transfer_data: TransferRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    _permission = Depends(require_permission("inventory", "transfer"))
):
    """Move stock between two warehouses in one transaction"""
    ledger = InventoryLedger(db)
    return await ledger.transfer(
        product_id=transfer_data.product_id,
        from_warehouse_id=transfer_data.from_warehouse_id,
        to_warehouse_id=transfer_data.to_warehouse_id,
        quantity=transfer_data.quantity,
        reference_id=transfer_data.reference_id,
        notes=transfer_data.notes,
        actor_id=current_user.id
    )
