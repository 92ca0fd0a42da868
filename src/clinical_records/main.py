import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.clinical_records.api.routes_audit import router as audit_router
from src.clinical_records.api.routes_auth import router as auth_router
from src.clinical_records.api.routes_patients import router as patients_router
from src.clinical_records.config import configure_logging, settings
from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.errors import PersistenceError
from src.clinical_records.infra.db.bootstrap import dispose_engine, init_sql_repositories
from src.clinical_records.ratelimit import api_rate_limiter
from src.clinical_records.services.audit.service import audit_service
from src.clinical_records.services.users.service import user_service

logger = logging.getLogger(__name__)

app = FastAPI(title="Clinical Records API", version=settings.app_version)


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook.

    Configures logging, switches to SQL repositories when USE_SQL_REPOS and
    DATABASE_URL are set (in-memory repositories stay active otherwise) and
    makes sure the default administrator account exists.
    """

    configure_logging()
    init_sql_repositories()
    user_service.ensure_default_admin()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    dispose_engine()


allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(PersistenceError)
async def persistence_exception_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    # The real cause stays in the server log.
    logger.error("Persistence failure on %s %s", request.method, request.url.path, exc_info=exc)
    audit_service.log_event(action=AuditAction.SERVER_ERROR, details=str(exc), request=request)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    audit_service.log_event(action=AuditAction.SERVER_ERROR, details=type(exc).__name__, request=request)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Liveness probe."""
    return {
        "status": "OK",
        "timestamp": utc_now().isoformat(),
        "version": settings.app_version,
        "environment": settings.environment,
    }


# Every /api route shares the general rate limit; /api/auth adds its own.
api_dependencies = [Depends(api_rate_limiter)]
app.include_router(auth_router, prefix="/api", dependencies=api_dependencies)
app.include_router(patients_router, prefix="/api", dependencies=api_dependencies)
app.include_router(audit_router, prefix="/api", dependencies=api_dependencies)
