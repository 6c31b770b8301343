"""
Motor de consistencia del ledger.

Mantiene el balance guardado de cada cuenta igual al balance inicial más el
efecto firmado de sus transacciones. Reglas:

1. Los cambios de balance son updates relativos (balance = balance + delta),
   nunca leer-modificar-escribir.
2. Cada operación es una única transacción de base de datos: o se aplican
   todas sus escrituras o ninguna.
3. Los errores de almacenamiento se convierten en LedgerStorageError después
   del rollback; el texto crudo de la base solo va al log.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple
from enum import Enum

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import models, schemas
from ..exceptions import (
    DuplicateNameError,
    LedgerError,
    LedgerStorageError,
    LedgerValidationError,
    NotFoundError,
    PreconditionError,
    SystemAccountError,
)
from .recurrence import next_payment_date

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Ocurrió un error inesperado. Intenta nuevamente."

# Campos de TransactionUpdate que aceptan None explícito
NULLABLE_FIELDS = {"category_id", "description"}


# --- UTILIDADES ---
def signed_amount(transaction_type: str, amount: Decimal) -> Decimal:
    """Efecto de una transacción sobre su cuenta: +monto si es ingreso, -monto si es gasto."""
    amount = Decimal(amount)
    return amount if transaction_type == models.TransactionType.INCOME.value else -amount


def plain(value):
    return value.value if isinstance(value, Enum) else value


def _require_positive(amount: Decimal):
    if amount is None or Decimal(amount) <= 0:
        raise LedgerValidationError("El monto debe ser mayor a 0")


@asynccontextmanager
async def atomic(db: AsyncSession, action: str, conflict_message: Optional[str] = None):
    """
    Ejecuta el bloque como una sola transacción.
    Commit al salir; rollback ante cualquier error.

    Con conflict_message, una violación de unicidad se reporta como
    DuplicateNameError en vez de error genérico.
    """
    try:
        yield
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        if conflict_message:
            logger.warning(f"⚠️ Conflicto de unicidad al {action}")
            raise DuplicateNameError(conflict_message) from e
        logger.error(f"❌ Violación de integridad al {action}: {e}")
        raise LedgerStorageError(GENERIC_ERROR) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"❌ Error de base de datos al {action}: {e}")
        raise LedgerStorageError(GENERIC_ERROR) from e
    except Exception as e:
        await db.rollback()
        logger.exception(f"❌ Error inesperado al {action}: {e}")
        raise LedgerStorageError(GENERIC_ERROR) from e


async def _adjust_balance(db: AsyncSession, account_id: int, delta: Decimal):
    """
    Suma delta al balance en la propia base (atómico frente a escrituras concurrentes).
    La cuenta del sistema no lleva balance: queda siempre en 0.
    """
    stmt = (
        update(models.Account)
        .where(models.Account.id == account_id, models.Account.is_system.is_(False))
        .values(balance=models.Account.balance + delta)
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)


async def _get_account(db: AsyncSession, workspace_id: int, account_id: int) -> models.Account:
    query = select(models.Account).filter(
        models.Account.id == account_id,
        models.Account.workspace_id == workspace_id
    )
    account = (await db.execute(query)).scalars().first()
    if not account:
        raise NotFoundError("Cuenta no encontrada")
    return account


async def _get_transaction(db: AsyncSession, workspace_id: int, transaction_id: int) -> models.Transaction:
    # Bloquea la fila para que dos ediciones no reviertan el mismo efecto dos veces
    query = (
        select(models.Transaction)
        .filter(
            models.Transaction.id == transaction_id,
            models.Transaction.workspace_id == workspace_id
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    transaction = (await db.execute(query)).scalars().first()
    if not transaction:
        raise NotFoundError("Transacción no encontrada")
    return transaction


async def check_category(db: AsyncSession, workspace_id: int, category_id: int):
    """La categoría debe ser global o del dueño del workspace."""
    owner_id = select(models.Workspace.user_id).where(models.Workspace.id == workspace_id).scalar_subquery()
    query = select(models.Category.id).filter(
        models.Category.id == category_id,
        or_(models.Category.user_id.is_(None), models.Category.user_id == owner_id)
    )
    if (await db.execute(query)).scalar() is None:
        raise NotFoundError("Categoría no encontrada")


def _reject_system(account: models.Account):
    if account.is_system:
        raise SystemAccountError("No se puede modificar una cuenta del sistema")


# --- TRANSACCIONES ---
async def create_transaction(
    db: AsyncSession,
    workspace_id: int,
    data: schemas.TransactionCreate
) -> models.Transaction:
    """
    Crea una transacción y aplica su efecto en el balance de la cuenta.

    Ambas escrituras van en la misma transacción de base de datos.
    """
    _require_positive(data.amount)

    async with atomic(db, "crear transacción"):
        account = await _get_account(db, workspace_id, data.account_id)
        _reject_system(account)
        if data.category_id is not None:
            await check_category(db, workspace_id, data.category_id)

        transaction = models.Transaction(
            workspace_id=workspace_id,
            account_id=account.id,
            category_id=data.category_id,
            amount=data.amount,
            transaction_type=plain(data.transaction_type),
            scope=plain(data.scope),
            description=data.description,
            date=data.date,
        )
        db.add(transaction)
        await db.flush()

        effect = signed_amount(transaction.transaction_type, transaction.amount)
        await _adjust_balance(db, account.id, effect)

    logger.info(f"✅ Transacción {transaction.id} creada en cuenta {account.id} ({effect:+})")
    return transaction


async def update_transaction(
    db: AsyncSession,
    workspace_id: int,
    transaction_id: int,
    data: schemas.TransactionUpdate
) -> models.Transaction:
    """
    Actualiza una transacción manteniendo los balances.

    Orden (correcto también si cambia la cuenta):
    1. Revierte el efecto anterior en la cuenta anterior.
    2. Aplica el efecto nuevo en la cuenta nueva (o la misma).
    3. Actualiza la fila.
    """
    changes = {
        field: plain(value)
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    if "amount" in changes:
        _require_positive(changes["amount"])

    async with atomic(db, "actualizar transacción"):
        transaction = await _get_transaction(db, workspace_id, transaction_id)

        old_account_id = transaction.account_id
        new_account_id = changes.get("account_id", old_account_id)
        if new_account_id != old_account_id:
            _reject_system(await _get_account(db, workspace_id, new_account_id))

        if changes.get("category_id") is not None:
            await check_category(db, workspace_id, changes["category_id"])

        old_effect = signed_amount(transaction.transaction_type, transaction.amount)
        new_effect = signed_amount(
            changes.get("transaction_type", transaction.transaction_type),
            changes.get("amount", transaction.amount)
        )

        await _adjust_balance(db, old_account_id, -old_effect)
        await _adjust_balance(db, new_account_id, new_effect)

        for field, value in changes.items():
            setattr(transaction, field, value)
        await db.flush()

    logger.info(
        f"✅ Transacción {transaction.id} actualizada: "
        f"cuenta {old_account_id} ({-old_effect:+}), cuenta {new_account_id} ({new_effect:+})"
    )
    return transaction


async def delete_transaction(db: AsyncSession, workspace_id: int, transaction_id: int) -> models.Transaction:
    """Revierte el efecto de la transacción en su cuenta y la elimina."""
    async with atomic(db, "eliminar transacción"):
        transaction = await _get_transaction(db, workspace_id, transaction_id)
        effect = signed_amount(transaction.transaction_type, transaction.amount)

        await _adjust_balance(db, transaction.account_id, -effect)
        await db.delete(transaction)

    logger.info(f"🗑️ Transacción {transaction_id} eliminada (cuenta {transaction.account_id}, {-effect:+})")
    return transaction


# --- CICLO DE VIDA DE CUENTAS ---
async def archive_account(db: AsyncSession, workspace_id: int, account_id: int) -> models.Account:
    """
    Archiva la cuenta (borrado suave). No toca balance ni transacciones.
    Archivar una cuenta ya archivada no cambia nada.
    """
    async with atomic(db, "archivar cuenta"):
        account = await _get_account(db, workspace_id, account_id)
        _reject_system(account)
        if account.archived_at is None:
            account.archived_at = datetime.now(timezone.utc)
            await db.flush()

    logger.info(f"📦 Cuenta {account_id} archivada")
    return account


async def restore_account(db: AsyncSession, workspace_id: int, account_id: int) -> models.Account:
    """Restaura una cuenta archivada. Sobre una cuenta activa no hace nada."""
    async with atomic(db, "restaurar cuenta"):
        account = await _get_account(db, workspace_id, account_id)
        _reject_system(account)
        if account.archived_at is not None:
            account.archived_at = None
            await db.flush()

    logger.info(f"♻️ Cuenta {account_id} restaurada")
    return account


async def get_or_create_system_account(db: AsyncSession, workspace_id: int) -> models.Account:
    """
    Devuelve la cuenta del sistema "Eliminadas" del workspace, creándola si no existe.

    No hace commit: corre dentro de la transacción de quien la llama.
    """
    query = select(models.Account).filter(
        models.Account.workspace_id == workspace_id,
        models.Account.is_system.is_(True)
    )
    account = (await db.execute(query)).scalars().first()
    if account:
        return account

    account = models.Account(
        workspace_id=workspace_id,
        name=models.SYSTEM_ACCOUNT_NAME,
        account_type=models.AccountType.BANK.value,
        balance=Decimal(0),
        is_business=False,
        is_system=True,
        archived_at=None,
    )
    db.add(account)
    await db.flush()
    logger.info(f"🏦 Cuenta del sistema creada para workspace {workspace_id}")
    return account


async def permanently_delete_account(db: AsyncSession, workspace_id: int, account_id: int) -> int:
    """
    Elimina definitivamente una cuenta archivada.

    Sus transacciones se reasignan a la cuenta "Eliminadas" (solo cambia
    account_id) para conservar el historial. El balance de la cuenta se
    descarta. Retorna la cantidad de transacciones transferidas.
    """
    async with atomic(db, "eliminar cuenta"):
        account = await _get_account(db, workspace_id, account_id)
        _reject_system(account)
        if account.archived_at is None:
            raise PreconditionError("Solo se pueden eliminar cuentas archivadas")

        count_query = select(func.count(models.Transaction.id)).filter(
            models.Transaction.account_id == account.id
        )
        transferred = (await db.execute(count_query)).scalar() or 0

        if transferred > 0:
            system_account = await get_or_create_system_account(db, workspace_id)
            await db.execute(
                update(models.Transaction)
                .where(models.Transaction.account_id == account.id)
                .values(account_id=system_account.id)
                .execution_options(synchronize_session=False)
            )

        # Los recurrentes vinculados vuelven a usar la cuenta por defecto
        await db.execute(
            update(models.Recurring)
            .where(models.Recurring.account_id == account.id)
            .values(account_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(account)
        await db.flush()

    logger.info(f"🗑️ Cuenta {account_id} eliminada. {transferred} transacciones movidas a '{models.SYSTEM_ACCOUNT_NAME}'")
    return transferred


# --- RECURRENTES ---
async def _resolve_recurring_account(
    db: AsyncSession,
    workspace_id: int,
    recurring: models.Recurring
) -> models.Account:
    """Cuenta vinculada al recurrente o, si no hay, la primera cuenta activa del workspace."""
    account: Optional[models.Account] = None
    if recurring.account_id is not None:
        query = select(models.Account).filter(
            models.Account.id == recurring.account_id,
            models.Account.workspace_id == workspace_id
        )
        account = (await db.execute(query)).scalars().first()
        if account is not None:
            _reject_system(account)

    if account is None:
        query = (
            select(models.Account)
            .filter(
                models.Account.workspace_id == workspace_id,
                models.Account.archived_at.is_(None),
                models.Account.is_system.is_(False)
            )
            .order_by(models.Account.id)
            .limit(1)
        )
        account = (await db.execute(query)).scalars().first()

    if account is None:
        raise LedgerValidationError("No hay cuentas disponibles para registrar el pago")
    return account


async def register_recurring_payment(
    db: AsyncSession,
    workspace_id: int,
    recurring_id: int
) -> Tuple[models.Transaction, models.Recurring]:
    """
    Registra el pago de un recurrente vencido.

    En una sola transacción:
    1. Crea la transacción con fecha = next_payment actual.
    2. Aplica su efecto en el balance de la cuenta.
    3. Avanza next_payment según la frecuencia.
    """
    async with atomic(db, "registrar pago recurrente"):
        query = (
            select(models.Recurring)
            .filter(
                models.Recurring.id == recurring_id,
                models.Recurring.workspace_id == workspace_id
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        recurring = (await db.execute(query)).scalars().first()
        if not recurring:
            raise NotFoundError("Recurrente no encontrado")
        if not recurring.is_active:
            raise PreconditionError("El recurrente está inactivo")
        _require_positive(recurring.amount)

        account = await _resolve_recurring_account(db, workspace_id, recurring)
        paid_on = recurring.next_payment

        transaction = models.Transaction(
            workspace_id=workspace_id,
            account_id=account.id,
            category_id=recurring.category_id,
            amount=recurring.amount,
            transaction_type=recurring.transaction_type,
            scope=recurring.scope,
            description=f"Pago recurrente: {recurring.name}",
            date=paid_on,
        )
        db.add(transaction)
        await db.flush()

        await _adjust_balance(db, account.id, signed_amount(recurring.transaction_type, recurring.amount))
        recurring.next_payment = next_payment_date(paid_on, recurring.frequency)
        await db.flush()

    logger.info(
        f"🔁 Recurrente {recurring_id} registrado: transacción {transaction.id}, "
        f"próximo pago {recurring.next_payment}"
    )
    return transaction, recurring
