"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from crediario.api.middleware import RequestIDMiddleware, MetricsMiddleware
from crediario.api.v1 import customers, history, notes, payments
from crediario.infrastructure.database.session import init_db
from crediario.infrastructure.observability.logging import setup_logging
from crediario.config import settings

# Setup structured logging
setup_logging(settings.log_level, settings.service_name)


def create_app(create_tables: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Crediario",
        description="Installment credit ledger: notes, installments and payment allocation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if create_tables:
        init_db()

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
    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(notes.router, prefix="/v1", tags=["notes"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(history.router, prefix="/v1", tags=["history"])

    return app


app = create_app()
