"""
Security — Session validation for route handlers.

Every protected endpoint resolves the caller's identity through
Supabase Auth before any data is read or written. Nothing in the
request body is trusted to name the user.

Usage in route handlers:
    from app.core.security import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: str = Depends(get_current_user_id)):
        return {"user_id": user_id}
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import httpx

from app.core.config import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our 401 instead of FastAPI's 403.
_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def fetch_auth_user(token: str) -> dict:
    """
    Resolve an access token to the Supabase Auth user record.

    Calls GET {SUPABASE_URL}/auth/v1/user with the token. Any network
    failure, non-200 status or malformed body is reported as 401, so
    callers never see a half-authenticated state.
    """
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{SUPABASE_URL}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": SUPABASE_ANON_KEY,
                },
                timeout=10.0,
            )
    except httpx.RequestError as exc:
        logger.warning("Auth service unreachable: %s", exc)
        raise _unauthorized(
            "Authentication service unavailable. Please try again."
        ) from exc

    if response.status_code != 200:
        raise _unauthorized("Invalid or expired authentication token.")

    try:
        user_data = response.json()
    except ValueError:
        raise _unauthorized("Authentication service returned an invalid response.")

    if not isinstance(user_data, dict) or not user_data.get("id"):
        raise _unauthorized("Invalid authentication token — no user ID found.")

    return user_data


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """
    FastAPI dependency that validates the session and returns the user ID.

    Raises:
        HTTPException(401): If the token is missing, invalid, or expired.

    Returns:
        str: The authenticated user's UUID (from auth.users.id).
    """
    if credentials is None:
        raise _unauthorized(
            "Missing authentication token. Provide a Bearer token in the Authorization header."
        )

    user_data = await fetch_auth_user(credentials.credentials)
    return user_data["id"]
