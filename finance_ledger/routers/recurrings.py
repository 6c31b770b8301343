from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud, schemas, models
from ..database import get_db
from ..dependencies import get_workspace
from ..events import publish_event, transaction_payload
from ..services import ledger

router = APIRouter(prefix="/workspaces/{workspace_id}/recurrings", tags=["Recurrings"])

@router.get("", response_model=List[schemas.RecurringResponse])
async def list_recurrings(
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """Recurrentes del workspace: activos primero, por fecha del próximo pago."""
    return await crud.get_recurrings(db, workspace.id)

@router.post("", response_model=schemas.RecurringResponse, status_code=201)
async def create_recurring(
    recurring: schemas.RecurringCreate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    return await crud.create_recurring(db, workspace.id, recurring)

@router.put("/{recurring_id}", response_model=schemas.RecurringResponse)
async def update_recurring(
    recurring_id: int,
    recurring: schemas.RecurringUpdate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    return await crud.update_recurring(db, workspace.id, recurring_id, recurring)

@router.delete("/{recurring_id}", status_code=204)
async def delete_recurring(
    recurring_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    await crud.delete_recurring(db, workspace.id, recurring_id)

@router.post("/{recurring_id}/register", response_model=schemas.RecurringRegisterResponse)
async def register_payment(
    recurring_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Registrar Pago Recurrente**

    Crea la transacción con la fecha del pago vencido, ajusta el balance de
    la cuenta y avanza la fecha del próximo pago según la frecuencia.
    """
    transaction, recurring = await ledger.register_recurring_payment(db, workspace.id, recurring_id)

    event_data = transaction_payload(transaction)
    event_data["recurring_id"] = recurring.id
    publish_event("recurring.registered", event_data)

    return {"transaction_id": transaction.id, "next_payment": recurring.next_payment}
