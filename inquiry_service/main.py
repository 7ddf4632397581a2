"""
Inquiry Service - Business Inquiry Capture & Admin Triage API.
Accepts public inquiry submissions, notifies the submitter and the admin in
the background, and exposes JWT-protected endpoints to list, annotate and
track inquiries.
"""
import os
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from . import __version__, service
from .auth import admin_id, create_access_token, get_current_admin, resolve_admin, verify_admin_credentials
from .database import Base, engine, get_db
from .email_service import get_mailer
from .exceptions import (
    InquiryNotFound,
    InquiryServiceError,
    InquiryValidationError,
    UnexpectedFailure,
    format_validation_errors,
)
from .notifications import dispatch_inquiry_notifications, inquiry_payload, notification_enabled
from .schemas import (
    AdminUser,
    InquiryCreate,
    InquiryCreatedResponse,
    InquiryDetailResponse,
    InquiryListItem,
    InquiryListResponse,
    InquiryStats,
    InquirySummary,
    InquiryUpdate,
    LoginRequest,
    MessageResponse,
    NoteCreate,
    Pagination,
    StatsResponse,
    TokenResponse,
    VerifyResponse,
    to_detail,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


# =============================================================================
# FastAPI App
# =============================================================================

# Create tables on startup
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Inquiry Service",
    description="Business inquiry capture, email notifications and admin triage",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.on_event("startup")
async def startup_event():
    """Log notification setup on startup."""
    logger.info(f"🚀 Inquiry Service {__version__} listening under {API_PREFIX}")
    logger.info(
        f"📧 Confirmation emails: {notification_enabled('SEND_EMAIL_NOTIFICATIONS')} | "
        f"Admin alerts: {notification_enabled('SEND_ADMIN_NOTIFICATIONS')}"
    )
    if not os.getenv("ADMIN_EMAIL"):
        logger.warning("⚠️ ADMIN_EMAIL not set - admin login and admin alerts are disabled")


# =============================================================================
# Error Handlers
# =============================================================================

def _error(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    body = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(InquiryValidationError)
async def inquiry_validation_handler(request: Request, exc: InquiryValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", format_validation_errors(exc.errors()))


@app.exception_handler(InquiryNotFound)
async def not_found_handler(request: Request, exc: InquiryNotFound):
    return _error(status.HTTP_404_NOT_FOUND, "Inquiry not found")


@app.exception_handler(UnexpectedFailure)
async def unexpected_failure_handler(request: Request, exc: UnexpectedFailure):
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error. Please try again later.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


def _client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


# =============================================================================
# Health
# =============================================================================

@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check with database status."""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"❌ Health check DB error: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "inquiry", "database": "unreachable"},
        )
    return {
        "status": "ok",
        "service": "inquiry",
        "version": __version__,
        "database": database,
        "email_configured": get_mailer() is not None,
    }


# =============================================================================
# Auth Endpoints
# =============================================================================

auth_router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["auth"])


@auth_router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest):
    """Authenticate the admin and return a JWT token."""
    if not verify_admin_credentials(credentials.email, credentials.password):
        logger.warning(f"🔒 Failed admin login for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = create_access_token(credentials.email)
    logger.info(f"✅ Admin logged in: {credentials.email}")
    return TokenResponse(
        token=token,
        user=AdminUser(id=admin_id(), email=credentials.email),
    )


@auth_router.get("/verify", response_model=VerifyResponse)
async def verify(admin: AdminUser = Depends(get_current_admin)):
    """Check a bearer token and echo the identity it carries."""
    return VerifyResponse(user=admin)


# =============================================================================
# Inquiry Endpoints
# =============================================================================

inquiry_router = APIRouter(prefix=f"{API_PREFIX}/inquiries", tags=["inquiries"])


@inquiry_router.post("", response_model=InquiryCreatedResponse, status_code=201)
async def create_inquiry(
    payload: InquiryCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Store a public inquiry, then send notifications in the background.
    """
    try:
        inquiry = service.create_inquiry(
            db,
            payload,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except InquiryServiceError:
        raise
    except Exception as e:
        logger.exception(f"❌ Error creating inquiry: {e}")
        raise UnexpectedFailure("create inquiry") from e

    # Schedule notifications (non-blocking)
    background_tasks.add_task(dispatch_inquiry_notifications, inquiry.id, inquiry_payload(inquiry))

    return InquiryCreatedResponse(data=InquirySummary.model_validate(inquiry))


@inquiry_router.get("", response_model=InquiryListResponse)
async def list_inquiries(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    status: Optional[str] = None,
    interest: Optional[str] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """
    List inquiries newest first, with optional filters and search.
    limit defaults to 10 and is capped at 100; the pagination block echoes
    the limit actually applied.
    """
    result = service.list_inquiries(
        db,
        status=status,
        interest=interest,
        priority=priority,
        search=search,
        page=page,
        limit=limit,
    )
    return InquiryListResponse(
        data=[InquiryListItem.model_validate(item) for item in result.items],
        pagination=Pagination(page=result.page, limit=result.limit, total=result.total, pages=result.pages),
    )


@inquiry_router.get("/stats", response_model=StatsResponse)
async def inquiry_stats(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Dashboard counts."""
    return StatsResponse(data=InquiryStats(**service.get_stats(db)))


@inquiry_router.get("/{inquiry_id}", response_model=InquiryDetailResponse)
async def get_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Get a specific inquiry by ID."""
    inquiry = service.get_inquiry(db, inquiry_id)
    return InquiryDetailResponse(data=to_detail(inquiry, resolve_admin))


@inquiry_router.patch("/{inquiry_id}", response_model=InquiryDetailResponse)
async def update_inquiry(
    inquiry_id: str,
    changes: InquiryUpdate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Update status, priority, assignee or follow-up date."""
    inquiry = service.update_inquiry(db, inquiry_id, changes)
    return InquiryDetailResponse(
        message="Inquiry updated successfully",
        data=to_detail(inquiry, resolve_admin),
    )


@inquiry_router.post("/{inquiry_id}/notes", response_model=InquiryDetailResponse)
async def add_note(
    inquiry_id: str,
    note: NoteCreate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Append an admin note."""
    inquiry = service.add_note(db, inquiry_id, note.text, added_by=admin.id)
    return InquiryDetailResponse(
        message="Note added successfully",
        data=to_detail(inquiry, resolve_admin),
    )


@inquiry_router.delete("/{inquiry_id}", response_model=MessageResponse)
async def delete_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Delete an inquiry permanently."""
    service.delete_inquiry(db, inquiry_id)
    return MessageResponse(message="Inquiry deleted successfully")


app.include_router(auth_router)
app.include_router(inquiry_router)


# =============================================================================
# Root Info
# =============================================================================

@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "Inquiry Service",
        "version": __version__,
        "endpoints": {
            "/health": "Health check (includes database status)",
            f"{API_PREFIX}/inquiries": "POST - Submit inquiry (public), GET - List inquiries",
            f"{API_PREFIX}/inquiries/stats": "GET - Inquiry statistics",
            f"{API_PREFIX}/inquiries/{{id}}": "GET/PATCH/DELETE - Manage a specific inquiry",
            f"{API_PREFIX}/inquiries/{{id}}/notes": "POST - Add an admin note",
            f"{API_PREFIX}/auth/login": "POST - Admin login",
            f"{API_PREFIX}/auth/verify": "GET - Verify a token",
        },
    }
