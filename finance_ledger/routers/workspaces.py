from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud, schemas
from ..database import get_db
from ..security import get_current_user, UserPayload

router = APIRouter(prefix="/workspaces", tags=["Workspaces"])

@router.get("", response_model=List[schemas.WorkspaceResponse])
async def list_workspaces(
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    """Workspaces del usuario, en orden de creación."""
    return await crud.get_workspaces(db, user.user_id)

@router.post("", response_model=schemas.WorkspaceResponse, status_code=201)
async def create_workspace(
    workspace: schemas.WorkspaceCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    return await crud.create_workspace(db, workspace, user.user_id)
