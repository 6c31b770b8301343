import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy import func, or_, desc, nulls_first
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from . import models, schemas
from .exceptions import NotFoundError, PreconditionError, SystemAccountError
from .services.ledger import atomic, check_category, plain

logger = logging.getLogger(__name__)

DUPLICATE_ACCOUNT = "Ya existe una cuenta con ese nombre"
DUPLICATE_CATEGORY = "Ya existe una categoría con ese nombre"


def _clean_changes(data, nullable=()) -> Dict[str, Any]:
    """Campos enviados en el update; None solo cuenta en los campos anulables."""
    return {
        field: plain(value)
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in nullable
    }


# --- WORKSPACES ---
async def get_workspaces(db: AsyncSession, user_id: int) -> List[models.Workspace]:
    query = (
        select(models.Workspace)
        .filter(models.Workspace.user_id == user_id)
        .order_by(models.Workspace.created_at, models.Workspace.id)
    )
    result = await db.execute(query)
    return result.scalars().all()

async def get_owned_workspace(db: AsyncSession, workspace_id: int, user_id: int) -> models.Workspace:
    """Busca el workspace verificando que pertenezca al usuario."""
    query = select(models.Workspace).filter(
        models.Workspace.id == workspace_id,
        models.Workspace.user_id == user_id
    )
    workspace = (await db.execute(query)).scalars().first()
    if not workspace:
        raise NotFoundError("Workspace no encontrado")
    return workspace

async def create_workspace(db: AsyncSession, data: schemas.WorkspaceCreate, user_id: int) -> models.Workspace:
    workspace = models.Workspace(
        user_id=user_id,
        name=data.name,
        workspace_type=plain(data.workspace_type),
        currency=data.currency.upper(),
    )
    async with atomic(db, "crear workspace"):
        db.add(workspace)
        await db.flush()
    return workspace


# --- CUENTAS ---
async def create_account(db: AsyncSession, workspace_id: int, data: schemas.AccountCreate) -> models.Account:
    """
    Crea una cuenta con su balance inicial.
    El nombre duplicado lo detecta el índice único (sin distinguir mayúsculas).
    """
    account = models.Account(
        workspace_id=workspace_id,
        name=data.name.strip(),
        account_type=plain(data.account_type),
        balance=data.balance,
        is_business=data.is_business,
        is_system=False,
        archived_at=None,
    )
    async with atomic(db, "crear cuenta", conflict_message=DUPLICATE_ACCOUNT):
        db.add(account)
        await db.flush()
    logger.info(f"✅ Cuenta {account.id} creada en workspace {workspace_id}")
    return account

async def update_account(
    db: AsyncSession,
    workspace_id: int,
    account_id: int,
    data: schemas.AccountUpdate
) -> models.Account:
    """Actualiza nombre, tipo o marca de negocio. El balance no se toca aquí."""
    changes = _clean_changes(data)
    if "name" in changes:
        changes["name"] = changes["name"].strip()

    async with atomic(db, "actualizar cuenta", conflict_message=DUPLICATE_ACCOUNT):
        query = select(models.Account).filter(
            models.Account.id == account_id,
            models.Account.workspace_id == workspace_id
        )
        account = (await db.execute(query)).scalars().first()
        if not account:
            raise NotFoundError("Cuenta no encontrada")
        if account.is_system:
            raise SystemAccountError("No se puede modificar una cuenta del sistema")

        for field, value in changes.items():
            setattr(account, field, value)
        await db.flush()
    return account

async def get_account(db: AsyncSession, workspace_id: int, account_id: int) -> models.Account:
    """Relee la cuenta desde la base (el balance pudo cambiar con un update relativo)."""
    query = (
        select(models.Account)
        .filter(models.Account.id == account_id, models.Account.workspace_id == workspace_id)
        .execution_options(populate_existing=True)
    )
    account = (await db.execute(query)).scalars().first()
    if not account:
        raise NotFoundError("Cuenta no encontrada")
    return account

async def get_accounts(db: AsyncSession, workspace_id: int, include_archived: bool = False) -> Dict[str, Any]:
    """
    Lista las cuentas con cantidad de transacciones y última actividad.

    Sin include_archived solo se listan las activas, más la cuenta del
    sistema que siempre aparece. Orden: sistema al final, activas primero,
    mayor balance, nombre.
    """
    stats = (
        select(
            models.Transaction.account_id.label("account_id"),
            func.count(models.Transaction.id).label("transaction_count"),
            func.max(models.Transaction.date).label("last_activity_at")
        )
        .group_by(models.Transaction.account_id)
        .subquery()
    )

    conditions = [models.Account.workspace_id == workspace_id]
    if not include_archived:
        conditions.append(or_(models.Account.archived_at.is_(None), models.Account.is_system.is_(True)))

    query = (
        select(models.Account, stats.c.transaction_count, stats.c.last_activity_at)
        .outerjoin(stats, stats.c.account_id == models.Account.id)
        .filter(*conditions)
        .order_by(
            models.Account.is_system,
            nulls_first(models.Account.archived_at.asc()),
            desc(models.Account.balance),
            models.Account.name
        )
        .execution_options(populate_existing=True)
    )
    rows = (await db.execute(query)).all()

    accounts = []
    total_balance = Decimal(0)
    for account, tx_count, last_activity in rows:
        if not account.is_system and account.archived_at is None:
            total_balance += account.balance

        item = schemas.AccountWithStats.model_validate(account)
        item.transaction_count = tx_count or 0
        item.last_activity_at = last_activity
        accounts.append(item)

    # Archivadas se cuentan siempre, aunque no se listen
    archived_query = select(func.count(models.Account.id)).filter(
        models.Account.workspace_id == workspace_id,
        models.Account.archived_at.isnot(None),
        models.Account.is_system.is_(False)
    )
    archived_count = (await db.execute(archived_query)).scalar() or 0

    return {
        "accounts": accounts,
        "total_balance": total_balance,
        "archived_count": archived_count
    }


# --- CATEGORÍAS ---
async def get_categories(db: AsyncSession, user_id: int) -> List[models.Category]:
    """Categorías del usuario más las globales."""
    query = (
        select(models.Category)
        .filter(or_(models.Category.user_id == user_id, models.Category.user_id.is_(None)))
        .order_by(models.Category.transaction_type, models.Category.name)
    )
    result = await db.execute(query)
    return result.scalars().all()

async def _get_user_category(db: AsyncSession, category_id: int, user_id: int) -> models.Category:
    query = select(models.Category).filter(
        models.Category.id == category_id,
        models.Category.user_id == user_id
    )
    category = (await db.execute(query)).scalars().first()
    if not category:
        raise NotFoundError("Categoría no encontrada")
    return category

async def create_category(db: AsyncSession, data: schemas.CategoryCreate, user_id: int) -> models.Category:
    category = models.Category(
        user_id=user_id,
        name=data.name.strip(),
        icon=data.icon or None,
        transaction_type=plain(data.transaction_type),
    )
    async with atomic(db, "crear categoría", conflict_message=DUPLICATE_CATEGORY):
        db.add(category)
        await db.flush()
    return category

async def update_category(
    db: AsyncSession,
    category_id: int,
    data: schemas.CategoryCreate,
    user_id: int
) -> models.Category:
    async with atomic(db, "actualizar categoría", conflict_message=DUPLICATE_CATEGORY):
        category = await _get_user_category(db, category_id, user_id)
        category.name = data.name.strip()
        category.icon = data.icon or None
        category.transaction_type = plain(data.transaction_type)
        await db.flush()
    return category

async def delete_category(db: AsyncSession, category_id: int, user_id: int):
    """Elimina la categoría solo si ninguna transacción o recurrente la usa."""
    async with atomic(db, "eliminar categoría"):
        category = await _get_user_category(db, category_id, user_id)

        tx_count = (await db.execute(
            select(func.count(models.Transaction.id)).filter(models.Transaction.category_id == category.id)
        )).scalar() or 0
        rec_count = (await db.execute(
            select(func.count(models.Recurring.id)).filter(models.Recurring.category_id == category.id)
        )).scalar() or 0

        if tx_count > 0 or rec_count > 0:
            raise PreconditionError(
                f"No se puede eliminar: tiene {tx_count} transacciones y {rec_count} recurrentes asociadas"
            )
        await db.delete(category)


# --- RECURRENTES ---
async def get_recurrings(db: AsyncSession, workspace_id: int) -> List[models.Recurring]:
    query = (
        select(models.Recurring)
        .filter(models.Recurring.workspace_id == workspace_id)
        .order_by(desc(models.Recurring.is_active), models.Recurring.next_payment, models.Recurring.id)
    )
    result = await db.execute(query)
    return result.scalars().all()

async def _get_recurring(db: AsyncSession, workspace_id: int, recurring_id: int) -> models.Recurring:
    query = select(models.Recurring).filter(
        models.Recurring.id == recurring_id,
        models.Recurring.workspace_id == workspace_id
    )
    recurring = (await db.execute(query)).scalars().first()
    if not recurring:
        raise NotFoundError("Recurrente no encontrado")
    return recurring

async def _check_account(db: AsyncSession, workspace_id: int, account_id: int):
    """La cuenta debe ser del workspace y no puede ser la del sistema."""
    query = select(models.Account.is_system).filter(
        models.Account.id == account_id,
        models.Account.workspace_id == workspace_id
    )
    is_system = (await db.execute(query)).scalar()
    if is_system is None:
        raise NotFoundError("Cuenta no encontrada")
    if is_system:
        raise SystemAccountError("No se puede usar una cuenta del sistema")

async def create_recurring(db: AsyncSession, workspace_id: int, data: schemas.RecurringCreate) -> models.Recurring:
    async with atomic(db, "crear recurrente"):
        if data.account_id is not None:
            await _check_account(db, workspace_id, data.account_id)
        if data.category_id is not None:
            await check_category(db, workspace_id, data.category_id)

        recurring = models.Recurring(
            workspace_id=workspace_id,
            **{field: plain(value) for field, value in data.model_dump().items()}
        )
        db.add(recurring)
        await db.flush()
    return recurring

async def update_recurring(
    db: AsyncSession,
    workspace_id: int,
    recurring_id: int,
    data: schemas.RecurringUpdate
) -> models.Recurring:
    changes = _clean_changes(data, nullable=("account_id", "category_id"))

    async with atomic(db, "actualizar recurrente"):
        recurring = await _get_recurring(db, workspace_id, recurring_id)
        if changes.get("account_id") is not None:
            await _check_account(db, workspace_id, changes["account_id"])
        if changes.get("category_id") is not None:
            await check_category(db, workspace_id, changes["category_id"])

        for field, value in changes.items():
            setattr(recurring, field, value)
        await db.flush()
    return recurring

async def delete_recurring(db: AsyncSession, workspace_id: int, recurring_id: int):
    """Las transacciones ya generadas se conservan."""
    async with atomic(db, "eliminar recurrente"):
        recurring = await _get_recurring(db, workspace_id, recurring_id)
        await db.delete(recurring)


# --- TRANSACCIONES ---
async def get_transactions(
    db: AsyncSession,
    workspace_id: int,
    page: int = 1,
    limit: int = 50,
    transaction_type: Optional[str] = None,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> Dict[str, Any]:
    """Lista transacciones con filtros y paginación, más recientes primero."""
    offset = (page - 1) * limit
    conditions = [models.Transaction.workspace_id == workspace_id]

    # Filtros Dinámicos
    if transaction_type:
        conditions.append(models.Transaction.transaction_type == plain(transaction_type))
    if account_id:
        conditions.append(models.Transaction.account_id == account_id)
    if category_id:
        conditions.append(models.Transaction.category_id == category_id)
    if date_from:
        conditions.append(models.Transaction.date >= date_from)
    if date_to:
        conditions.append(models.Transaction.date <= date_to)

    # Contar Rapido
    count_query = select(func.count(models.Transaction.id)).filter(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    # Ordenar y Paginar
    query = (
        select(models.Transaction)
        .filter(*conditions)
        .order_by(desc(models.Transaction.date), desc(models.Transaction.id))
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    data = (await db.execute(query)).scalars().all()

    return {
        "data": data,
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit if limit > 0 else 0
        }
    }
