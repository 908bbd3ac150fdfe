"""
Application Configuration

Loads environment variables and provides typed settings
for the application. Uses python-dotenv to load from .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from the project root
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)

# --- App Settings ---
PROJECT_NAME = "Medmatch"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Supabase ---
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# --- QStash (scheduled jobs) ---
QSTASH_CURRENT_SIGNING_KEY: str = os.getenv("QSTASH_CURRENT_SIGNING_KEY", "")
QSTASH_NEXT_SIGNING_KEY: str = os.getenv("QSTASH_NEXT_SIGNING_KEY", "")

# --- Admin console ---
ADMIN_PAGE_SIZE: int = int(os.getenv("ADMIN_PAGE_SIZE", "10"))

# --- Matching ---
MATCH_GROUP_SIZE: int = int(os.getenv("MATCH_GROUP_SIZE", "4"))


def validate_supabase_config() -> bool:
    """Check that all required Supabase credentials are present and non-empty."""
    missing = []
    if not SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not SUPABASE_ANON_KEY:
        missing.append("SUPABASE_ANON_KEY")
    if not SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")
    if missing:
        raise EnvironmentError(
            f"Missing required Supabase environment variables: {', '.join(missing)}. "
            f"Please fill in your .env file at: {_env_path}"
        )
    return True


def is_qstash_configured() -> bool:
    """
    Check if at least one QStash signing key is available.

    Scheduled-job endpoints reject every request when this is False.
    """
    return bool(QSTASH_CURRENT_SIGNING_KEY or QSTASH_NEXT_SIGNING_KEY)
