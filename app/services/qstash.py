"""
QStash Service — Authenticate scheduled-job webhooks sent by Upstash QStash.

The weekly jobs (matching-day reminder, feedback request, weekly
matching) are triggered by QStash schedules. Each delivery carries an
`Upstash-Signature` header: an HS256 JWT whose claims bind the request
body (SHA-256) and the destination URL. A request is accepted only if
the JWT verifies under the current or the next signing key, which lets
keys rotate without downtime.
"""

import hashlib
import logging

import jwt
from fastapi import Header, HTTPException, Request, status

from app.core.config import QSTASH_CURRENT_SIGNING_KEY, QSTASH_NEXT_SIGNING_KEY

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["iss", "sub", "exp", "nbf", "iat", "jti", "body"]


def _signing_keys() -> list[tuple[str, str]]:
    keys = []
    if QSTASH_CURRENT_SIGNING_KEY:
        keys.append(("current", QSTASH_CURRENT_SIGNING_KEY))
    if QSTASH_NEXT_SIGNING_KEY:
        keys.append(("next", QSTASH_NEXT_SIGNING_KEY))
    return keys


def verify_qstash_signature(signature: str, body: bytes, url: str) -> dict:
    """
    Verify a QStash signature for the given raw body and destination URL.

    Returns:
        dict: The decoded JWT claims.

    Raises:
        ValueError: Missing signature, no keys configured, bad or expired
            JWT, body hash mismatch, or destination URL mismatch.
    """
    if not signature:
        raise ValueError("Missing Upstash-Signature header")

    keys = _signing_keys()
    if not keys:
        raise ValueError(
            "No QStash signing keys configured. "
            "Set QSTASH_CURRENT_SIGNING_KEY in your .env file."
        )

    last_error: ValueError | None = None
    for key_name, signing_key in keys:
        try:
            claims = jwt.decode(
                signature,
                signing_key,
                algorithms=["HS256"],
                issuer="Upstash",
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            last_error = ValueError("QStash signature has expired")
            continue
        except jwt.InvalidTokenError as exc:
            last_error = ValueError(f"Invalid QStash signature ({key_name} key): {exc}")
            continue

        # A valid JWT with the wrong body or URL is a replay, not a key problem.
        expected_body_hash = hashlib.sha256(body).hexdigest()
        if claims.get("body") != expected_body_hash:
            raise ValueError("Body hash mismatch")
        if claims.get("sub") != url:
            raise ValueError(
                f"Destination URL mismatch: expected {url}, got {claims.get('sub')}"
            )

        logger.info(
            "QStash signature verified with %s key (message_id=%s)",
            key_name, claims.get("jti"),
        )
        return claims

    raise last_error or ValueError("QStash signature verification failed")


async def require_qstash_signature(
    request: Request,
    upstash_signature: str | None = Header(None, alias="Upstash-Signature"),
) -> dict:
    """
    FastAPI dependency: reject the request with 401 unless QStash signed it.

    Returns the verified claims.
    """
    body = await request.body()
    try:
        return verify_qstash_signature(
            signature=upstash_signature or "",
            body=body,
            url=str(request.url),
        )
    except ValueError as exc:
        logger.warning("QStash signature verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid QStash signature: {exc}",
        )
