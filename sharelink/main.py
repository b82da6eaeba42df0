import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sharelink.api.v1.router import api_router
from sharelink.config import settings
from sharelink.core.exceptions import LinkAccessException
from sharelink.core.circuit_breaker import CircuitBreakerOpenException
from sharelink.core.logging_config import setup_logging, cleanup_old_logs
from sharelink.core.logging_utils import mask_path, sanitize_log_message
from sharelink.database import init_db, close_db
from sharelink.external.object_store import build_object_store
from sharelink.middleware.logging_middleware import LoggingMiddleware
from sharelink.middleware.security import setup_security_middleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging, database tables and the object store."""
    setup_logging()
    cleanup_old_logs()
    await init_db()
    if getattr(app.state, "object_store", None) is None:
        app.state.object_store = build_object_store()
    logger.info(f"Application startup complete (object store: {settings.STORAGE_PROVIDER})")


@app.on_event("shutdown")
async def shutdown_event():
    store = getattr(app.state, "object_store", None)
    if store is not None:
        await store.aclose()
        app.state.object_store = None
    await close_db()
    logger.info("Application shutdown complete")


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept", "Origin"],
    expose_headers=["X-Request-ID"],
)

# Security middleware (request size limit + security headers)
setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

# Logging middleware (after CORS, before routes)
if settings.LOG_ENABLE_REQUEST_LOGGING:
    app.add_middleware(LoggingMiddleware)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


def _request_context(request: Request) -> dict:
    return {
        "RequestID": getattr(request.state, "request_id", None),
        "Path": mask_path(request.url.path),
        "Method": request.method,
        "IP": request.client.host if request.client else None,
    }


@app.exception_handler(LinkAccessException)
async def link_access_exception_handler(request: Request, exc: LinkAccessException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        sanitize_log_message(
            f"Request failed: {exc.code}",
            StatusCode=exc.status_code,
            Detail=exc.detail,
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = f"{location}: {first.get('msg')}" if location else (first.get("msg") or "Invalid request")

    logger.warning(
        sanitize_log_message(
            "Request validation failed",
            Detail=detail,
            ErrorCount=len(errors),
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": detail, "code": "VALIDATION_ERROR"}
    )


@app.exception_handler(CircuitBreakerOpenException)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpenException):
    logger.warning(
        sanitize_log_message(
            "Circuit breaker open",
            Message=exc.message,
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Storage temporarily unavailable. Please try again later.",
            "code": "STORAGE_UNAVAILABLE"
        }
    )


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(
        sanitize_log_message(
            f"Unhandled exception: {type(exc).__name__}",
            ExceptionType=type(exc).__name__,
            ExceptionMessage=str(exc),
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error" if settings.ENVIRONMENT == "production" else str(exc),
            "code": "INTERNAL_ERROR"
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": f"{settings.API_V1_STR}/docs"
    }
