"""
Supabase Client

Every route and job talks to Postgres through one lazily created
service-role client. It bypasses Row Level Security, so callers scope
each query to the authenticated user id (or re-check the admin role)
before reading or writing.
"""

from supabase import Client, create_client

from app.core.config import (
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
    validate_supabase_config,
)

_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Return the shared service-role client, creating it on first use.

    Raises:
        EnvironmentError: Supabase credentials are missing from .env.
    """
    global _service_client
    if _service_client is None:
        validate_supabase_config()
        _service_client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
    return _service_client
