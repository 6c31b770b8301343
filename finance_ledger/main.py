from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import os

# Imports Locales
from . import models
from .database import engine
from .exceptions import LedgerError
from .routers import workspaces, accounts, transactions, recurrings, categories, reports

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("finance-ledger")

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:4200").split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Crear tablas al inicio
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    logger.info("🚀 Finance Ledger listo.")

    yield

    await engine.dispose()

# --- Configuración de FastAPI ---
app = FastAPI(
    title="Finance Ledger",
    description="Cuentas, transacciones, recurrentes y reportes mensuales por workspace.",
    version="1.0.0",
    root_path="/api/ledger",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(workspaces.router)
app.include_router(accounts.router)
app.include_router(transactions.router)
app.include_router(recurrings.router)
app.include_router(categories.router)
app.include_router(reports.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "finance-ledger"}
