from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Date, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base
import enum

SYSTEM_ACCOUNT_NAME = "Eliminadas"

# --- ENUMS ---
class WorkspaceType(str, enum.Enum):
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"

class AccountType(str, enum.Enum):
    BANK = "BANK"
    CASH = "CASH"
    DIGITAL = "DIGITAL"
    CARD = "CARD"
    INVESTMENT = "INVESTMENT"

class TransactionType(str, enum.Enum):
    INCOME = "INCOME"   # Suma al balance
    EXPENSE = "EXPENSE" # Resta al balance

class TransactionScope(str, enum.Enum):
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"
    MIXED = "MIXED"

class Frequency(str, enum.Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    YEARLY = "YEARLY"

# --- MODELOS ---
class Workspace(Base):
    """
    Espacio de trabajo (personal o de negocio).
    Todo lo que cuelga de aquí se consulta filtrando por workspace_id.
    """
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=False)    # Dueño (viene del token)
    name = Column(String, nullable=False)
    workspace_type = Column(String, nullable=False, default=WorkspaceType.PERSONAL.value)
    currency = Column(String(3), default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Account(Base):
    """
    Cuenta (banco, efectivo, tarjeta...).
    El balance guardado debe ser igual al balance inicial más el efecto
    de todas sus transacciones. Solo el ledger lo modifica.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), index=True, nullable=False)

    name = Column(String(50), nullable=False)
    account_type = Column(String, nullable=False, default=AccountType.BANK.value)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    is_business = Column(Boolean, nullable=False, default=False)

    # Cuenta reservada "Eliminadas"
    is_system = Column(Boolean, nullable=False, default=False)
    # NULL = activa
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Category(Base):
    """Categoría de ingreso o gasto. user_id NULL = categoría global por defecto."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=True)
    name = Column(String(50), nullable=False)
    icon = Column(String, nullable=True)
    transaction_type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Transaction(Base):
    """
    Movimiento de dinero.
    El monto siempre se guarda positivo; el signo lo da transaction_type.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), index=True, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True, nullable=True)

    amount = Column(Numeric(14, 2), nullable=False)
    transaction_type = Column(String, nullable=False)       # INCOME o EXPENSE
    scope = Column(String, nullable=False, default=TransactionScope.PERSONAL.value)
    description = Column(String(500), nullable=True)
    date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    account = relationship("Account")
    category = relationship("Category")


class Recurring(Base):
    """
    Plantilla de pago recurrente. No se agenda sola: el usuario la "registra"
    cuando vence y eso genera una transacción.
    """
    __tablename__ = "recurrings"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), index=True, nullable=False)
    # Si es NULL se usa la primera cuenta activa del workspace
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    name = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    transaction_type = Column(String, nullable=False)
    scope = Column(String, nullable=False, default=TransactionScope.PERSONAL.value)
    frequency = Column(String, nullable=False, default=Frequency.MONTHLY.value)
    next_payment = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    account = relationship("Account")
    category = relationship("Category")


# --- RESTRICCIONES DE UNICIDAD ---
# Nombres únicos sin distinguir mayúsculas, dentro de su ámbito
Index(
    "uq_accounts_workspace_name",
    Account.workspace_id, Account.is_system, func.lower(Account.name),
    unique=True,
)
# Una sola cuenta del sistema por workspace
Index(
    "uq_accounts_system_per_workspace",
    Account.workspace_id,
    unique=True,
    postgresql_where=Account.is_system.is_(True),
    sqlite_where=Account.is_system.is_(True),
)
Index(
    "uq_categories_user_type_name",
    Category.user_id, Category.transaction_type, func.lower(Category.name),
    unique=True,
)
