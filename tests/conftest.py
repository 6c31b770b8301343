import os

# Antes de importar la app: sin Postgres ni RabbitMQ en las pruebas
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENV_MODE"] = "test"
os.environ.pop("RABBITMQ_URL", None)

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.future import select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finance_ledger import crud, models, schemas
from finance_ledger.database import Base, get_db
from finance_ledger.main import app
from finance_ledger.security import create_access_token

USER_ID = 1
OTHER_USER_ID = 2


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def workspace(db):
    return await crud.create_workspace(db, schemas.WorkspaceCreate(name="Personal"), USER_ID)


@pytest.fixture
def make_account(db, workspace):
    # Un rollback expira los objetos de la sesión: se guarda el id como int
    workspace_id = workspace.id

    async def _make(name="Banco", balance="0", **kwargs):
        data = schemas.AccountCreate(name=name, balance=Decimal(balance), **kwargs)
        return await crud.create_account(db, workspace_id, data)
    return _make


@pytest.fixture
def make_category(db):
    async def _make(name, transaction_type=models.TransactionType.EXPENSE, user_id=USER_ID):
        data = schemas.CategoryCreate(name=name, transaction_type=transaction_type)
        return await crud.create_category(db, data, user_id)
    return _make


@pytest.fixture
def balance_of(db):
    """Lee el balance directo de la base, sin pasar por el identity map."""
    async def _balance(account_id):
        query = select(models.Account.balance).where(models.Account.id == account_id)
        return (await db.execute(query)).scalar_one()
    return _balance


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "ana@example.com", "user_id": USER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
