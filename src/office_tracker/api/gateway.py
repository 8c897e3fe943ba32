"""API Gateway - FastAPI application for the HTTP-triggered notifications."""

import os, threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from office_tracker.api.schemas import ErrorResponse, NotifyUserRequest, NotifyUserResponse
from office_tracker.api.service import NotificationService
from office_tracker.common.exceptions import (
    ConfigurationError,
    MalformedRecordError,
    OfficeTrackerException,
    RecordStoreError,
    UserNotFoundError,
)
from office_tracker.common.logging import get_logger, short_id
from office_tracker.core.types import ReminderKind
from office_tracker.eligibility.schemas import FailedRule

logger = get_logger("office_tracker_api")


class ServiceManager:
    """Thread-safe service singleton manager."""
    
    _instance: Optional[NotificationService] = None
    _lock = threading.Lock()
    
    @classmethod
    def get_service(cls) -> NotificationService:
        """Get or create the notification service instance (thread-safe)."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = NotificationService.from_config()
                    logger.info("NotificationService initialized")
        return cls._instance
    
    @classmethod
    def is_ready(cls) -> bool:
        return cls._instance is not None
    
    @classmethod
    def shutdown(cls) -> None:
        """Shutdown the service and release resources."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None


def get_service() -> NotificationService:
    """Get the notification service instance."""
    return ServiceManager.get_service()


# =============================================================================
# CORS CONFIGURATION
# =============================================================================

def get_cors_origins() -> List[str]:
    """Get allowed CORS origins from OFFICE_TRACKER_CORS_ORIGINS.
    
    Comma-separated. Unset means no cross-origin access in production and
    any origin elsewhere.
    """
    origins_env = os.environ.get("OFFICE_TRACKER_CORS_ORIGINS", "")
    
    if origins_env:
        return [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    
    if os.environ.get("OFFICE_TRACKER_ENVIRONMENT", "development") == "production":
        logger.warning("OFFICE_TRACKER_CORS_ORIGINS not set in production; CORS disabled")
        return []
    
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Office Tracker API starting up...")
    try:
        get_service()
    except ConfigurationError as e:
        # /ready reports 503 until configuration is fixed
        logger.error(f"Service not initialized: {e.message}")
    
    yield
    
    logger.info("Office Tracker API shutting down...")
    ServiceManager.shutdown()


environment = os.environ.get("OFFICE_TRACKER_ENVIRONMENT", "development")
enable_docs_default = "false" if environment == "production" else "true"
enable_docs = os.environ.get("OFFICE_TRACKER_ENABLE_DOCS", enable_docs_default).lower() == "true"

app = FastAPI(
    title="Office Tracker Notifications API",
    description="HTTP triggers for geofence confirmations and test notifications.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if enable_docs else None,
    redoc_url="/redoc" if enable_docs else None,
)


cors_origins = get_cors_origins()
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["POST", "GET"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

_STATUS_BY_ERROR = {
    UserNotFoundError: 404,
    MalformedRecordError: 422,
    RecordStoreError: 502,
    ConfigurationError: 500,
}


def _error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(),
    )


@app.exception_handler(OfficeTrackerException)
async def office_tracker_error_handler(request: Request, exc: OfficeTrackerException) -> JSONResponse:
    """Map domain errors to HTTP status codes."""
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        500,
    )
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{exc.code}: {exc.message}", extra={"request_id": getattr(request.state, "request_id", None)})
    return _error_response(request, status_code, exc.code.lower(), exc.message)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors.
    
    Logs full exception for debugging but returns sanitized message to client.
    """
    logger.exception(
        "Unexpected error",
        extra={"request_id": getattr(request.state, "request_id", None), "error_type": type(exc).__name__}
    )
    return _error_response(request, 500, "internal_error", "An unexpected error occurred")


# =============================================================================
# MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to each request for tracing."""
    request_id = f"req_{uuid4().hex[:12]}"
    request.state.request_id = request_id
    
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.post(
    "/near-office",
    response_model=NotifyUserResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Send a geofence confirmation to one user",
)
def near_office(
    request: NotifyUserRequest,
    service: NotificationService = Depends(get_service),
) -> NotifyUserResponse:
    """Confirm office attendance for a user whose device was detected near the office.
    
    Answers 404 when the user or their push token is missing, and 200 with
    the failed rules when the user is not eligible.
    """
    logger.info(f"Geofence confirmation requested for {short_id(request.user_id)}")
    result = service.notify_user(
        request.user_id,
        ReminderKind.GEOFENCE_CONFIRMATION,
        dry_run=request.dry_run,
    )
    if FailedRule.NO_VALID_PUSH_TOKEN.value in result["failed_rules"]:
        raise HTTPException(status_code=404, detail="No push token for user")
    return NotifyUserResponse.model_validate(result)


@app.post(
    "/test-notification",
    response_model=NotifyUserResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Send a test notification to one user",
)
def test_notification(
    request: NotifyUserRequest,
    service: NotificationService = Depends(get_service),
) -> NotifyUserResponse:
    result = service.notify_user(
        request.user_id,
        ReminderKind.TEST_NOTIFICATION,
        dry_run=request.dry_run,
    )
    if FailedRule.NO_VALID_PUSH_TOKEN.value in result["failed_rules"]:
        raise HTTPException(status_code=404, detail="User or push token not found")
    return NotifyUserResponse.model_validate(result)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "office-tracker-notifications"}


@app.get("/ready")
async def readiness_check() -> dict:
    """Returns 503 until the service singleton is initialized."""
    if not ServiceManager.is_ready():
        raise HTTPException(status_code=503, detail="not_ready")
    return {"status": "ready", "service": "office-tracker-notifications"}


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "office_tracker.api.gateway:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
