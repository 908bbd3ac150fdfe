"""
Profile API — Edit onboarding answers after onboarding is complete.

POST /api/v1/profile — Partial update: any subset of steps, any subset
                       of fields within a step.
GET  /api/v1/profile — Same record as GET /api/v1/onboarding.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.onboarding import collection_write_failed, read_onboarding_record
from app.core.exceptions import CollectionWriteError
from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.onboarding import (
    OnboardingGetResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from app.services.profile_reconciler import apply_profile_update

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ProfileUpdateResponse,
)
async def update_profile(
    payload: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
) -> ProfileUpdateResponse:
    """
    Apply a partial profile update.

    Steps absent from the payload are left untouched. An empty payload
    is accepted and writes nothing.

    Returns:
        200: {"success": true, "message": ..., "updatedSteps": [...]}
        400: Payload failed validation.
        401: Missing or invalid authentication token.
        500: A table write failed; touched tables were rolled back.
    """
    client = get_service_client()

    try:
        apply_profile_update(client, user_id, payload)
    except CollectionWriteError as exc:
        raise collection_write_failed(exc)
    except Exception as exc:
        logger.error("Profile update failed for user %s: %s", user_id[:8], exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return ProfileUpdateResponse(updated_steps=payload.supplied_steps())


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=OnboardingGetResponse,
)
async def get_profile(
    user_id: str = Depends(get_current_user_id),
) -> OnboardingGetResponse:
    """Return the user's current onboarding record."""
    return await read_onboarding_record(user_id)
