"""
Medmatch Backend — FastAPI Entry Point

Initializes the FastAPI app, configures logging, registers the route
handlers and the error handlers that give every error response the
same {"error": ...} body shape the web client expects.
"""

import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.admin import router as admin_router
from app.api.groups import router as groups_router
from app.api.jobs import router as jobs_router
from app.api.matches import router as matches_router
from app.api.notifications import router as notifications_router
from app.api.onboarding import router as onboarding_router
from app.api.profile import router as profile_router
from app.api.users import router as users_router
from app.core.config import LOG_LEVEL, PROJECT_NAME, is_qstash_configured
from app.core.security import get_current_user_id

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

if not is_qstash_configured():
    logger.warning("No QStash signing keys set; /api/v1/jobs/* will reject every request")

app = FastAPI(
    title=f"{PROJECT_NAME} API",
    description="Group matching for medical professionals — Backend API",
    version="0.1.0",
)

# --- Register API routers ---
app.include_router(onboarding_router)
app.include_router(profile_router)
app.include_router(notifications_router)
app.include_router(groups_router)
app.include_router(matches_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(jobs_router)


# --- Error handlers ---

def _format_validation_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ())]
    if loc and loc[0] in ("body", "query", "path"):
        loc = loc[1:]
    path = ".".join(loc)
    return f"{path}: {error.get('msg', 'invalid value')}" if path else error.get("msg", "")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed or invalid payloads are a 400, as the web client expects."""
    details = [_format_validation_error(e) for e in exc.errors()]
    logger.info("Rejected %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid data format", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPException detail as {"error": ...}, keeping its headers."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.get("/health")
async def health_check():
    """Health check endpoint. Returns service status."""
    return {"status": "ok"}


@app.get("/api/v1/me")
async def get_current_user(user_id: str = Depends(get_current_user_id)):
    """
    Protected endpoint — returns the authenticated user's ID.

    Used to verify that session validation is wired correctly.
    """
    return {"user_id": user_id}
