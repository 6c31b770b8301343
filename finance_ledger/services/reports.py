from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, extract, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .. import models, schemas


MONTH_NAMES = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre"
]

UNCATEGORIZED_NAME = "Sin categoría"
UNCATEGORIZED_ICON = "📋"

INCOME = models.TransactionType.INCOME.value
EXPENSE = models.TransactionType.EXPENSE.value


def month_range(year: int, month: int):
    """Primer y último día del mes."""
    start = date(year, month, 1)
    end = start + relativedelta(months=1, days=-1)
    return start, end


def percent(part: Decimal, total: Decimal) -> Decimal:
    """Porcentaje con 2 decimales; 0 si el total es 0."""
    if not total:
        return Decimal(0)
    return (Decimal(part) / Decimal(total) * 100).quantize(Decimal("0.01"))


async def _totals_by_type(db: AsyncSession, workspace_id: int, start: date, end: date) -> Dict[str, Decimal]:
    query = (
        select(models.Transaction.transaction_type, func.sum(models.Transaction.amount))
        .filter(
            models.Transaction.workspace_id == workspace_id,
            models.Transaction.date >= start,
            models.Transaction.date <= end
        )
        .group_by(models.Transaction.transaction_type)
    )
    rows = (await db.execute(query)).all()
    totals = {INCOME: Decimal(0), EXPENSE: Decimal(0)}
    for tx_type, total in rows:
        totals[tx_type] = Decimal(total or 0)
    return totals


# --- DASHBOARD ---
async def get_dashboard(db: AsyncSession, workspace: models.Workspace, today: Optional[date] = None):
    """
    Resumen del workspace para el dashboard.

    El balance total solo suma cuentas activas que no son del sistema.
    Ingresos y gastos son los del mes en curso.
    """
    today = today or date.today()
    start_of_month, end_of_month = month_range(today.year, today.month)

    # Cuentas activas
    accounts_query = select(
        func.count(models.Account.id),
        func.sum(models.Account.balance)
    ).filter(
        models.Account.workspace_id == workspace.id,
        models.Account.archived_at.is_(None),
        models.Account.is_system.is_(False)
    )
    total_accounts, total_balance = (await db.execute(accounts_query)).one()

    # Conteo de transacciones
    tx_count_query = select(func.count(models.Transaction.id)).filter(
        models.Transaction.workspace_id == workspace.id
    )
    total_transactions = (await db.execute(tx_count_query)).scalar() or 0

    monthly = await _totals_by_type(db, workspace.id, start_of_month, end_of_month)

    # Últimas 5 transacciones
    recent_query = (
        select(models.Transaction)
        .options(selectinload(models.Transaction.category), selectinload(models.Transaction.account))
        .filter(models.Transaction.workspace_id == workspace.id)
        .order_by(desc(models.Transaction.date), desc(models.Transaction.id))
        .limit(5)
    )
    recent = (await db.execute(recent_query)).scalars().all()

    # Próximos recurrentes activos
    active_filter = [
        models.Recurring.workspace_id == workspace.id,
        models.Recurring.is_active.is_(True)
    ]
    upcoming_query = (
        select(models.Recurring)
        .filter(*active_filter)
        .order_by(models.Recurring.next_payment, models.Recurring.id)
        .limit(5)
    )
    upcoming = (await db.execute(upcoming_query)).scalars().all()
    active_recurrings = (await db.execute(
        select(func.count(models.Recurring.id)).filter(*active_filter)
    )).scalar() or 0

    return {
        "workspace": workspace,
        "stats": {
            "total_balance": total_balance or Decimal(0),
            "total_accounts": total_accounts or 0,
            "active_recurrings": active_recurrings,
            "total_transactions": total_transactions,
            "monthly_income": monthly[INCOME],
            "monthly_expenses": monthly[EXPENSE],
        },
        "recent_transactions": [
            {
                "id": tx.id,
                "amount": tx.amount,
                "date": tx.date,
                "description": tx.description,
                "transaction_type": tx.transaction_type,
                "category_name": tx.category.name if tx.category else None,
                "category_icon": tx.category.icon if tx.category else None,
                "account_name": tx.account.name,
            }
            for tx in recent
        ],
        "upcoming_recurrings": [
            {
                "id": rec.id,
                "name": rec.name,
                "amount": rec.amount,
                "next_payment": rec.next_payment,
                "transaction_type": rec.transaction_type,
                "frequency": rec.frequency,
            }
            for rec in upcoming
        ],
    }


# --- REPORTES MENSUALES ---
async def get_available_months(db: AsyncSession, workspace_id: int) -> List[schemas.AvailableMonth]:
    """Meses que tienen transacciones, del más reciente al más antiguo."""
    year_col = extract("year", models.Transaction.date).label("year")
    month_col = extract("month", models.Transaction.date).label("month")
    query = (
        select(year_col, month_col, func.count(models.Transaction.id).label("count"))
        .filter(models.Transaction.workspace_id == workspace_id)
        .group_by(year_col, month_col)
        .order_by(desc(year_col), desc(month_col))
    )
    rows = (await db.execute(query)).all()

    return [
        schemas.AvailableMonth(
            year=int(row.year),
            month=int(row.month),
            month_name=MONTH_NAMES[int(row.month) - 1],
            transaction_count=row.count
        )
        for row in rows
    ]


async def get_monthly_report(db: AsyncSession, workspace_id: int, year: int, month: int) -> schemas.MonthlyReport:
    """
    Reporte de un mes: totales, desglose por categoría, transacciones y
    comparación con el mes anterior.

    El porcentaje de cada categoría es sobre el total de su propio tipo
    (gastos sobre gastos, ingresos sobre ingresos).
    """
    start, end = month_range(year, month)
    prev_start, prev_end = month_range(*_previous_month(year, month))

    query = (
        select(models.Transaction)
        .options(selectinload(models.Transaction.category), selectinload(models.Transaction.account))
        .filter(
            models.Transaction.workspace_id == workspace_id,
            models.Transaction.date >= start,
            models.Transaction.date <= end
        )
        .order_by(desc(models.Transaction.date), desc(models.Transaction.id))
    )
    transactions = (await db.execute(query)).scalars().all()

    total_income = Decimal(0)
    total_expenses = Decimal(0)
    categories: Dict[Optional[int], dict] = {}

    for tx in transactions:
        amount = Decimal(tx.amount)
        if tx.transaction_type == INCOME:
            total_income += amount
        else:
            total_expenses += amount

        entry = categories.get(tx.category_id)
        if entry is None:
            entry = {
                "id": tx.category_id,
                "name": tx.category.name if tx.category else UNCATEGORIZED_NAME,
                "icon": (tx.category.icon if tx.category else None) or UNCATEGORIZED_ICON,
                "transaction_type": tx.category.transaction_type if tx.category else EXPENSE,
                "amount": Decimal(0),
                "transaction_count": 0,
            }
            categories[tx.category_id] = entry
        entry["amount"] += amount
        entry["transaction_count"] += 1

    category_reports = []
    for entry in sorted(categories.values(), key=lambda c: c["amount"], reverse=True):
        base = total_income if entry["transaction_type"] == INCOME else total_expenses
        category_reports.append(schemas.CategoryReport(percentage=percent(entry["amount"], base), **entry))

    prev = await _totals_by_type(db, workspace_id, prev_start, prev_end)
    income_delta = total_income - prev[INCOME]
    expense_delta = total_expenses - prev[EXPENSE]

    return schemas.MonthlyReport(
        year=year,
        month=month,
        month_name=MONTH_NAMES[month - 1],
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        transaction_count=len(transactions),
        categories=category_reports,
        transactions=[
            schemas.ReportTransaction(
                id=tx.id,
                amount=tx.amount,
                date=tx.date,
                description=tx.description,
                transaction_type=tx.transaction_type,
                category_id=tx.category_id,
                category_name=tx.category.name if tx.category else None,
                category_icon=tx.category.icon if tx.category else None,
                account_name=tx.account.name,
            )
            for tx in transactions
        ],
        comparison=schemas.MonthlyComparison(
            income_delta=income_delta,
            expense_delta=expense_delta,
            income_delta_percent=percent(income_delta, prev[INCOME]),
            expense_delta_percent=percent(expense_delta, prev[EXPENSE]),
        ),
    )


def _previous_month(year: int, month: int):
    return (year - 1, 12) if month == 1 else (year, month - 1)
