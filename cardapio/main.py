import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardapio.core.config import CORS_ORIGINS, DATABASE_URL
from cardapio.core.database import Base, engine
from cardapio.core.logging_setup import configure_logging
from cardapio.core.startup_checks import ensure_migrations_applied, validate_database_environment
from cardapio.middleware.observability import ObservabilityMiddleware
import cardapio.models  # garante que os models são importados antes do create_all

from cardapio.routers.coupons import router as coupons_router
from cardapio.routers.notifications import router as notifications_router
from cardapio.routers.orders import router as orders_router
from cardapio.routers.payments import router as payments_router
from cardapio.routers.payments_webhook import router as payments_webhook_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Cardápio Digital API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Routers
app.include_router(coupons_router)
app.include_router(orders_router)
app.include_router(notifications_router)
app.include_router(payments_router)
app.include_router(payments_webhook_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
