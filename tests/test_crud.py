from datetime import date
from decimal import Decimal

import pytest

from finance_ledger import crud, models, schemas
from finance_ledger.exceptions import DuplicateNameError, NotFoundError, PreconditionError, SystemAccountError
from finance_ledger.services import ledger

from .conftest import USER_ID, OTHER_USER_ID


async def test_workspace_ownership(db, workspace):
    found = await crud.get_owned_workspace(db, workspace.id, USER_ID)
    assert found.id == workspace.id

    with pytest.raises(NotFoundError):
        await crud.get_owned_workspace(db, workspace.id, OTHER_USER_ID)

    assert [w.id for w in await crud.get_workspaces(db, USER_ID)] == [workspace.id]
    assert await crud.get_workspaces(db, OTHER_USER_ID) == []


async def test_duplicate_account_name_is_case_insensitive(db, workspace, make_account):
    await make_account("Banco Central")
    with pytest.raises(DuplicateNameError):
        await make_account("banco central")

    # Otro workspace puede repetir el nombre
    other = await crud.create_workspace(db, schemas.WorkspaceCreate(name="Negocio"), USER_ID)
    account = await crud.create_account(db, other.id, schemas.AccountCreate(name="Banco Central"))
    assert account.id is not None


async def test_rename_to_existing_name_fails(db, workspace, make_account):
    await make_account("Efectivo")
    card = await make_account("Tarjeta")
    with pytest.raises(DuplicateNameError):
        await crud.update_account(db, workspace.id, card.id, schemas.AccountUpdate(name="EFECTIVO"))


async def test_update_account_keeps_balance(db, workspace, make_account, balance_of):
    account = await make_account("Ahorro", balance="120")
    updated = await crud.update_account(
        db, workspace.id, account.id,
        schemas.AccountUpdate(name="Ahorros", account_type=models.AccountType.INVESTMENT)
    )
    assert updated.name == "Ahorros"
    assert updated.account_type == "INVESTMENT"
    assert await balance_of(account.id) == Decimal("120")


async def test_system_account_cannot_be_updated(db, workspace):
    system = await ledger.get_or_create_system_account(db, workspace.id)
    await db.commit()
    with pytest.raises(SystemAccountError):
        await crud.update_account(db, workspace.id, system.id, schemas.AccountUpdate(name="Mía"))


async def test_account_listing(db, workspace, make_account):
    small = await make_account("Pequeña", balance="10")
    big = await make_account("Grande", balance="900")
    old = await make_account("Vieja", balance="5000")
    gone = await make_account("Cerrada", balance="1")

    await ledger.create_transaction(db, workspace.id, schemas.TransactionCreate(
        account_id=small.id, amount=Decimal("4"), transaction_type=models.TransactionType.EXPENSE,
        date=date(2024, 5, 2)
    ))
    await ledger.create_transaction(db, workspace.id, schemas.TransactionCreate(
        account_id=gone.id, amount=Decimal("1"), transaction_type=models.TransactionType.INCOME,
        date=date(2024, 5, 3)
    ))
    await ledger.archive_account(db, workspace.id, old.id)
    await ledger.archive_account(db, workspace.id, gone.id)
    await ledger.permanently_delete_account(db, workspace.id, gone.id)

    listing = await crud.get_accounts(db, workspace.id)
    names = [a.name for a in listing["accounts"]]
    assert names == ["Grande", "Pequeña", models.SYSTEM_ACCOUNT_NAME]
    assert listing["total_balance"] == Decimal("906")
    assert listing["archived_count"] == 1

    by_name = {a.name: a for a in listing["accounts"]}
    assert by_name["Pequeña"].transaction_count == 1
    assert by_name["Pequeña"].last_activity_at == date(2024, 5, 2)
    assert by_name["Grande"].transaction_count == 0
    assert by_name[models.SYSTEM_ACCOUNT_NAME].transaction_count == 1

    full = await crud.get_accounts(db, workspace.id, include_archived=True)
    assert [a.name for a in full["accounts"]] == ["Grande", "Pequeña", "Vieja", models.SYSTEM_ACCOUNT_NAME]
    assert full["total_balance"] == Decimal("906")
    assert big.id in [a.id for a in full["accounts"]]


async def test_duplicate_category_name(db, make_category):
    await make_category("Comida")
    with pytest.raises(DuplicateNameError):
        await make_category("COMIDA")
    # Mismo nombre con otro tipo sí se permite
    income = await make_category("Comida", models.TransactionType.INCOME)
    assert income.id is not None


async def test_categories_include_globals(db, make_category):
    global_category = await make_category("Salud", user_id=None)
    own = await make_category("Mascotas")
    await make_category("Ajena", user_id=OTHER_USER_ID)

    ids = {c.id for c in await crud.get_categories(db, USER_ID)}
    assert ids == {global_category.id, own.id}


async def test_update_category_of_other_user_fails(db, make_category):
    category = await make_category("Ajena", user_id=OTHER_USER_ID)
    data = schemas.CategoryCreate(name="Mía", transaction_type=models.TransactionType.EXPENSE)
    with pytest.raises(NotFoundError):
        await crud.update_category(db, category.id, data, USER_ID)


async def test_delete_category_in_use_is_blocked(db, workspace, make_account, make_category):
    account = await make_account()
    category = await make_category("Transporte")
    await ledger.create_transaction(db, workspace.id, schemas.TransactionCreate(
        account_id=account.id, amount=Decimal("3"), transaction_type=models.TransactionType.EXPENSE,
        date=date(2024, 4, 1), category_id=category.id
    ))

    with pytest.raises(PreconditionError) as exc_info:
        await crud.delete_category(db, category.id, USER_ID)
    assert "1 transacciones" in exc_info.value.message

    unused = await make_category("Libros")
    await crud.delete_category(db, unused.id, USER_ID)
    assert unused.id not in {c.id for c in await crud.get_categories(db, USER_ID)}


async def test_recurring_crud(db, workspace, make_account):
    account = await make_account()
    recurring = await crud.create_recurring(db, workspace.id, schemas.RecurringCreate(
        name="Netflix", amount=Decimal("15.99"), next_payment=date(2024, 6, 1), account_id=account.id
    ))
    assert recurring.frequency == "MONTHLY"
    assert recurring.is_active is True

    updated = await crud.update_recurring(
        db, workspace.id, recurring.id, schemas.RecurringUpdate(account_id=None, amount=Decimal("17.99"))
    )
    assert updated.account_id is None
    assert updated.amount == Decimal("17.99")

    ws_id, recurring_id = workspace.id, recurring.id
    with pytest.raises(NotFoundError):
        await crud.update_recurring(db, ws_id, recurring_id, schemas.RecurringUpdate(account_id=999))

    await crud.delete_recurring(db, ws_id, recurring_id)
    assert await crud.get_recurrings(db, ws_id) == []


async def test_recurring_cannot_use_system_account(db, workspace, make_account):
    account = await make_account()
    system = await ledger.get_or_create_system_account(db, workspace.id)
    await db.commit()
    recurring = await crud.create_recurring(db, workspace.id, schemas.RecurringCreate(
        name="Luz", amount=Decimal("20"), next_payment=date(2024, 6, 1), account_id=account.id
    ))
    ws_id, system_id, account_id, recurring_id = workspace.id, system.id, account.id, recurring.id

    with pytest.raises(SystemAccountError):
        await crud.create_recurring(db, ws_id, schemas.RecurringCreate(
            name="Agua", amount=Decimal("10"), next_payment=date(2024, 6, 1), account_id=system_id
        ))
    with pytest.raises(SystemAccountError):
        await crud.update_recurring(db, ws_id, recurring_id, schemas.RecurringUpdate(account_id=system_id))

    recurrings = await crud.get_recurrings(db, ws_id)
    assert [(r.name, r.account_id) for r in recurrings] == [("Luz", account_id)]


async def test_transactions_are_paginated_and_filtered(db, workspace, make_account):
    account = await make_account(balance="1000")
    for day in range(1, 8):
        await ledger.create_transaction(db, workspace.id, schemas.TransactionCreate(
            account_id=account.id,
            amount=Decimal(day),
            transaction_type=models.TransactionType.INCOME if day % 2 else models.TransactionType.EXPENSE,
            date=date(2024, 7, day)
        ))

    page = await crud.get_transactions(db, workspace.id, page=1, limit=3)
    assert page["meta"] == {"total": 7, "page": 1, "limit": 3, "total_pages": 3}
    assert [t.date.day for t in page["data"]] == [7, 6, 5]

    last = await crud.get_transactions(db, workspace.id, page=3, limit=3)
    assert [t.date.day for t in last["data"]] == [1]

    expenses = await crud.get_transactions(
        db, workspace.id, transaction_type=models.TransactionType.EXPENSE,
        date_from=date(2024, 7, 3), date_to=date(2024, 7, 6)
    )
    assert [t.date.day for t in expenses["data"]] == [6, 4]
