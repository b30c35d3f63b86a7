"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lending_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lending_engine.api.v1 import companies, contracts, jobs
from lending_engine.infrastructure.observability.logging import setup_logging
from lending_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Lending Engine",
        description="Installment schedules and delinquency status for micro-lending contracts",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
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
    app.include_router(jobs.router, prefix="/v1", tags=["jobs"])
    app.include_router(companies.router, prefix="/v1", tags=["companies"])
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])

    return app


app = create_app()
