#!/usr/bin/env python3
"""
Create Admin User Script

Creates (or reuses) an auth user and grants it an admin role. Defaults
come from the environment (ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME,
ADMIN_ROLE) and can be overridden on the command line.

Usage:
    python -m app.scripts.create_admin_user
    python -m app.scripts.create_admin_user --email ops@example.com --role admin
"""

import argparse
import asyncio
import logging
import os
import sys

import httpx

from app.core.config import validate_supabase_config
from app.core.permissions import ADMIN_ROLES
from app.db.supabase_client import get_service_client
from app.services import auth_admin
from app.services.profile_tables import utc_now_iso

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def create_admin_user(email: str, password: str, name: str, role: str) -> str:
    """Ensure an auth user with this email exists and holds role. Returns its id."""
    client = get_service_client()

    async with httpx.AsyncClient() as http_client:
        user = await auth_admin.find_user_by_email(http_client, email)
        if user is not None:
            logger.info("User %s already exists, reusing it", email)
        else:
            user = await auth_admin.create_user(
                http_client, email, password, {"full_name": name},
            )
            logger.info("Created auth user %s", email)

    user_id = user["id"]

    try:
        client.table("profiles").upsert({
            "id": user_id,
            "email": email,
            "full_name": name,
            "is_onboarding_complete": False,
            "is_matchable": False,
        }, on_conflict="id").execute()
    except Exception as exc:
        logger.warning("Could not create profile for %s: %s", email, exc)

    client.table("admin_roles").upsert({
        "user_id": user_id,
        "role": role,
        "updated_at": utc_now_iso(),
    }, on_conflict="user_id").execute()
    logger.info("Granted %s role to %s", role, email)
    return user_id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote a Medmatch admin user")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@test.com"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD", "Admin123!@#"))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Test Admin"))
    parser.add_argument(
        "--role",
        default=os.getenv("ADMIN_ROLE", "super_admin"),
        help="admin or super_admin (default: super_admin)",
    )
    args = parser.parse_args(argv)

    if args.role not in ADMIN_ROLES:
        parser.error(f"--role must be one of: {', '.join(ADMIN_ROLES)}")

    try:
        validate_supabase_config()
        user_id = asyncio.run(create_admin_user(args.email, args.password, args.name, args.role))
    except Exception as exc:
        logger.error("Failed to create admin user: %s", exc)
        return 1

    print("\n=== Admin User Ready ===")
    print(f"Email: {args.email}")
    print(f"Role: {args.role}")
    print(f"User id: {user_id}")
    print("Admin console: /admin")
    return 0


if __name__ == "__main__":
    sys.exit(main())
