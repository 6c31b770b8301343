from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud, schemas
from ..database import get_db
from ..security import get_current_user, UserPayload

router = APIRouter(prefix="/categories", tags=["Categories"])

@router.get("", response_model=List[schemas.CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    """Categorías propias y globales."""
    return await crud.get_categories(db, user.user_id)

@router.post("", response_model=schemas.CategoryResponse, status_code=201)
async def create_category(
    category: schemas.CategoryCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    return await crud.create_category(db, category, user.user_id)

@router.put("/{category_id}", response_model=schemas.CategoryResponse)
async def update_category(
    category_id: int,
    category: schemas.CategoryCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    return await crud.update_category(db, category_id, category, user.user_id)

@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(get_current_user)
):
    """No se puede eliminar si tiene transacciones o recurrentes asociados."""
    await crud.delete_category(db, category_id, user.user_id)
