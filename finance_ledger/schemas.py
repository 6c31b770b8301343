from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from datetime import datetime, date
import datetime as dt
from typing import List, Optional, Generic, TypeVar
from .models import WorkspaceType, AccountType, TransactionType, TransactionScope, Frequency

T = TypeVar("T")

# --- GENERIC PAGINATOR ---
class MetaData(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: MetaData

# --- WORKSPACES ---
class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    workspace_type: WorkspaceType = WorkspaceType.PERSONAL
    currency: str = Field("USD", min_length=3, max_length=3)

class WorkspaceResponse(BaseModel):
    id: int
    name: str
    workspace_type: WorkspaceType
    currency: str

    model_config = ConfigDict(from_attributes=True)

# --- ACCOUNTS ---
class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    account_type: AccountType = AccountType.BANK
    balance: Decimal = Field(Decimal(0), ge=0, description="Balance inicial")
    is_business: bool = False

class AccountUpdate(BaseModel):
    # El balance no se edita: solo se mueve a través de transacciones
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    account_type: Optional[AccountType] = None
    is_business: Optional[bool] = None

class AccountResponse(BaseModel):
    id: int
    workspace_id: int
    name: str
    account_type: str
    balance: Decimal
    is_business: bool
    is_system: bool
    archived_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AccountWithStats(AccountResponse):
    transaction_count: int = 0
    last_activity_at: Optional[date] = None

class AccountListResponse(BaseModel):
    accounts: List[AccountWithStats]
    total_balance: Decimal
    archived_count: int

class AccountDeleteResponse(BaseModel):
    account_id: int
    transferred_transactions: int

# --- CATEGORIES ---
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    icon: Optional[str] = None
    transaction_type: TransactionType

class CategoryResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    name: str
    icon: Optional[str] = None
    transaction_type: TransactionType

    model_config = ConfigDict(from_attributes=True)

# --- TRANSACTIONS ---
class TransactionCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Monto positivo; el signo lo da el tipo")
    transaction_type: TransactionType
    scope: TransactionScope = TransactionScope.PERSONAL
    date: date
    account_id: int
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=500)

class TransactionUpdate(BaseModel):
    """Solo se aplican los campos enviados (exclude_unset)."""
    amount: Optional[Decimal] = Field(None, gt=0)
    transaction_type: Optional[TransactionType] = None
    scope: Optional[TransactionScope] = None
    date: Optional[dt.date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=500)

class TransactionResponse(BaseModel):
    id: int
    workspace_id: int
    account_id: int
    category_id: Optional[int] = None
    amount: Decimal
    transaction_type: TransactionType
    scope: TransactionScope
    description: Optional[str] = None
    date: date

    model_config = ConfigDict(from_attributes=True)

# --- RECURRINGS ---
class RecurringCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    transaction_type: TransactionType = TransactionType.EXPENSE
    scope: TransactionScope = TransactionScope.PERSONAL
    frequency: Frequency = Frequency.MONTHLY
    next_payment: date
    account_id: Optional[int] = None
    category_id: Optional[int] = None

class RecurringUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, gt=0)
    transaction_type: Optional[TransactionType] = None
    scope: Optional[TransactionScope] = None
    frequency: Optional[Frequency] = None
    next_payment: Optional[date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None

class RecurringResponse(BaseModel):
    id: int
    workspace_id: int
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    name: str
    amount: Decimal
    transaction_type: TransactionType
    scope: TransactionScope
    frequency: str
    next_payment: date
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class RecurringRegisterResponse(BaseModel):
    transaction_id: int
    next_payment: date

# --- REPORTES ---
class RecentTransaction(BaseModel):
    id: int
    amount: Decimal
    date: date
    description: Optional[str] = None
    transaction_type: TransactionType
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    account_name: str

class UpcomingRecurring(BaseModel):
    id: int
    name: str
    amount: Decimal
    next_payment: date
    transaction_type: TransactionType
    frequency: str

class DashboardStats(BaseModel):
    total_balance: Decimal
    total_accounts: int
    active_recurrings: int
    total_transactions: int
    monthly_income: Decimal
    monthly_expenses: Decimal

class DashboardResponse(BaseModel):
    workspace: WorkspaceResponse
    stats: DashboardStats
    recent_transactions: List[RecentTransaction]
    upcoming_recurrings: List[UpcomingRecurring]

class AvailableMonth(BaseModel):
    year: int
    month: int
    month_name: str
    transaction_count: int

class CategoryReport(BaseModel):
    id: Optional[int] = None        # None = "Sin categoría"
    name: str
    icon: Optional[str] = None
    transaction_type: TransactionType
    amount: Decimal
    percentage: Decimal
    transaction_count: int

class MonthlyComparison(BaseModel):
    income_delta: Decimal
    expense_delta: Decimal
    income_delta_percent: Decimal
    expense_delta_percent: Decimal

class ReportTransaction(BaseModel):
    id: int
    amount: Decimal
    date: date
    description: Optional[str] = None
    transaction_type: TransactionType
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    account_name: str

class MonthlyReport(BaseModel):
    year: int
    month: int
    month_name: str
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    transaction_count: int
    categories: List[CategoryReport]
    transactions: List[ReportTransaction]
    comparison: MonthlyComparison
