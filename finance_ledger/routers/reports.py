from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from .. import schemas, models
from ..database import get_db
from ..dependencies import get_workspace
from ..services import reports

router = APIRouter(prefix="/workspaces/{workspace_id}", tags=["Reports"])

@router.get("/dashboard", response_model=schemas.DashboardResponse)
async def get_dashboard(
    as_of: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """Métricas del dashboard. `as_of` define el mes en curso (por defecto hoy)."""
    return await reports.get_dashboard(db, workspace, today=as_of)

@router.get("/reports/months", response_model=List[schemas.AvailableMonth])
async def get_available_months(
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """Meses con transacciones, para el selector de reportes."""
    return await reports.get_available_months(db, workspace.id)

@router.get("/reports/{year}/{month}", response_model=schemas.MonthlyReport)
async def get_monthly_report(
    year: int = Path(..., ge=1900, le=9999),
    month: int = Path(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    workspace: models.Workspace = Depends(get_workspace)
):
    """
    **Reporte Mensual**

    Totales, desglose por categoría y comparación con el mes anterior.
    """
    return await reports.get_monthly_report(db, workspace.id, year, month)
