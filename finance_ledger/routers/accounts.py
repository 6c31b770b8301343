from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud, schemas, models
from ..database import get_db
from ..dependencies import get_workspace
from ..events import publish_event
from ..services import ledger

router = APIRouter(prefix="/workspaces/{workspace_id}/accounts", tags=["Accounts"])

@router.get("", response_model=schemas.AccountListResponse)
async def list_accounts(
    include_archived: bool = False,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    Lista las cuentas del workspace.
    La cuenta del sistema "Eliminadas" aparece siempre, al final.
    """
    return await crud.get_accounts(db, workspace.id, include_archived=include_archived)

@router.post("", response_model=schemas.AccountResponse, status_code=201)
async def create_account(
    account: schemas.AccountCreate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    return await crud.create_account(db, workspace.id, account)

@router.put("/{account_id}", response_model=schemas.AccountResponse)
async def update_account(
    account_id: int,
    account: schemas.AccountUpdate,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """Cambia nombre, tipo o marca de negocio. El balance solo cambia con transacciones."""
    await crud.update_account(db, workspace.id, account_id, account)
    return await crud.get_account(db, workspace.id, account_id)

@router.post("/{account_id}/archive", response_model=schemas.AccountResponse)
async def archive_account(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Archivar Cuenta**

    Borrado suave: la cuenta deja de aparecer en las vistas activas y en el
    balance total, pero sus transacciones quedan intactas.
    """
    await ledger.archive_account(db, workspace.id, account_id)
    return await crud.get_account(db, workspace.id, account_id)

@router.post("/{account_id}/restore", response_model=schemas.AccountResponse)
async def restore_account(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    await ledger.restore_account(db, workspace.id, account_id)
    return await crud.get_account(db, workspace.id, account_id)

@router.delete("/{account_id}", response_model=schemas.AccountDeleteResponse)
async def delete_account(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Eliminar Cuenta Permanentemente**

    Solo para cuentas archivadas. Sus transacciones pasan a la cuenta del
    sistema "Eliminadas" para conservar el historial.
    """
    transferred = await ledger.permanently_delete_account(db, workspace.id, account_id)
    publish_event("account.deleted", {
        "account_id": account_id,
        "workspace_id": workspace.id,
        "transferred_transactions": transferred
    })
    return {"account_id": account_id, "transferred_transactions": transferred}
