from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud, schemas, models
from ..database import get_db
from ..dependencies import get_workspace
from ..events import publish_event, transaction_payload
from ..services import ledger

router = APIRouter(prefix="/workspaces/{workspace_id}/transactions", tags=["Transactions"])

@router.get("", response_model=schemas.PaginatedResponse[schemas.TransactionResponse])
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    transaction_type: Optional[models.TransactionType] = None,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """Historial de transacciones con filtros y paginación."""
    return await crud.get_transactions(
        db,
        workspace.id,
        page=page,
        limit=limit,
        transaction_type=transaction_type,
        account_id=account_id,
        category_id=category_id,
        date_from=date_from,
        date_to=date_to
    )

@router.post("", response_model=schemas.TransactionResponse, status_code=201)
async def create_transaction(
    transaction: schemas.TransactionCreate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Registrar Transacción**

    Crea el movimiento y ajusta el balance de la cuenta en la misma
    transacción de base de datos. Envía `transaction.created` al finalizar.
    """
    new_transaction = await ledger.create_transaction(db, workspace.id, transaction)
    publish_event("transaction.created", transaction_payload(new_transaction))
    return new_transaction

@router.patch("/{transaction_id}", response_model=schemas.TransactionResponse)
async def update_transaction(
    transaction_id: int,
    changes: schemas.TransactionUpdate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Editar Transacción**

    Revierte el efecto anterior y aplica el nuevo, aunque cambie la cuenta.
    """
    updated = await ledger.update_transaction(db, workspace.id, transaction_id, changes)
    publish_event("transaction.updated", transaction_payload(updated))
    return updated

@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    deleted = await ledger.delete_transaction(db, workspace.id, transaction_id)
    publish_event("transaction.deleted", transaction_payload(deleted))
