from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, models
from .database import get_db
from .security import get_current_user, UserPayload


async def get_workspace(
    workspace_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
) -> models.Workspace:
    """Resuelve el workspace de la ruta verificando que sea del usuario."""
    return await crud.get_owned_workspace(db, workspace_id, user.user_id)
