"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from budgetly.api.middleware import RequestIDMiddleware, MetricsMiddleware
from budgetly.api.v1 import dashboard, emis, expenses, income, suggestions, users
from budgetly.infrastructure.database.session import init_db
from budgetly.infrastructure.observability.logging import setup_logging
from budgetly.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Budgetly",
        description="Personal finance ledger, EMI tracking and purchase advice",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(users.router, prefix="/v1", tags=["users"])
    app.include_router(income.router, prefix="/v1", tags=["income"])
    app.include_router(expenses.router, prefix="/v1", tags=["expenses"])
    app.include_router(emis.router, prefix="/v1", tags=["emis"])
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])
    app.include_router(suggestions.router, prefix="/v1", tags=["suggestions"])

    return app


app = create_app()
