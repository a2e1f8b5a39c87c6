# audit_pipeline/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from audit_pipeline.api import dependencies
from audit_pipeline.api.middleware import CorrelationIdMiddleware, RequestAuditMiddleware
from audit_pipeline.api.routers import audit, health
from audit_pipeline.application.exceptions import ApplicationError
from audit_pipeline.config.logging import configure_logging
from audit_pipeline.config.settings import get_settings
from audit_pipeline.domain.exceptions import DomainError, DomainValidationError

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dependencies.shutdown()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> RequestAudit.
app.add_middleware(RequestAuditMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /orgs/{org_id}/audit...
app.include_router(health.router)
app.include_router(audit.router, prefix="/orgs")
