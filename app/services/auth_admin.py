"""
Auth Admin — Thin wrapper over the Supabase Auth Admin API (service role).

Used by account deletion and by the operator scripts that create, list
and delete auth identities.
"""

import logging
from typing import Optional

import httpx

from app.core.config import SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

ADMIN_USERS_PATH = "/auth/v1/admin/users"
DEFAULT_TIMEOUT = 30.0


class AuthAdminError(Exception):
    """The Auth Admin API answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Auth admin API returned {status_code}: {message}")


def _headers() -> dict:
    return {
        "apikey": SUPABASE_SERVICE_ROLE_KEY,
        "Authorization": f"Bearer {SUPABASE_SERVICE_ROLE_KEY}",
    }


def _raise_for_status(resp: httpx.Response, ok: tuple[int, ...] = (200,)) -> None:
    if resp.status_code not in ok:
        raise AuthAdminError(resp.status_code, resp.text)


async def list_users(http_client: httpx.AsyncClient, per_page: int = 1000) -> list[dict]:
    """Return every auth user, following pagination until a short page."""
    users: list[dict] = []
    page = 1
    while True:
        resp = await http_client.get(
            f"{SUPABASE_URL}{ADMIN_USERS_PATH}",
            params={"page": page, "per_page": per_page},
            headers=_headers(),
            timeout=DEFAULT_TIMEOUT,
        )
        _raise_for_status(resp)
        batch = resp.json().get("users") or []
        users.extend(batch)
        if len(batch) < per_page:
            return users
        page += 1


async def find_user_by_email(http_client: httpx.AsyncClient, email: str) -> Optional[dict]:
    for user in await list_users(http_client):
        if (user.get("email") or "").lower() == email.lower():
            return user
    return None


async def create_user(
    http_client: httpx.AsyncClient,
    email: str,
    password: str,
    user_metadata: Optional[dict] = None,
) -> dict:
    """Create a confirmed auth user and return it (includes "id")."""
    resp = await http_client.post(
        f"{SUPABASE_URL}{ADMIN_USERS_PATH}",
        json={
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": user_metadata or {},
        },
        headers=_headers(),
        timeout=DEFAULT_TIMEOUT,
    )
    _raise_for_status(resp, ok=(200, 201))
    return resp.json()


async def delete_user(http_client: httpx.AsyncClient, user_id: str) -> None:
    """
    Delete an auth user. Rows referencing it go through ON DELETE CASCADE.

    Raises:
        AuthAdminError: Non-200 answer (404 when the user does not exist).
        httpx.RequestError: The API could not be reached.
    """
    resp = await http_client.delete(
        f"{SUPABASE_URL}{ADMIN_USERS_PATH}/{user_id}",
        headers=_headers(),
        timeout=DEFAULT_TIMEOUT,
    )
    _raise_for_status(resp)
    logger.info("Deleted auth user %s", user_id[:8])
