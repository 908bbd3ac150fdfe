"""
Onboarding API — Submit and read back the 8-step onboarding record.

POST /api/v1/onboarding — Persist the complete payload, mark the profile
                          complete and matchable.
GET  /api/v1/onboarding — Reconstruct the record from storage, with
                          documented defaults for anything missing.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.exceptions import CollectionWriteError
from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.onboarding import (
    OnboardingGetResponse,
    OnboardingSubmitRequest,
    OnboardingSubmitResponse,
)
from app.services.onboarding_aggregator import submit_onboarding
from app.services.profile_reconciler import load_onboarding_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/onboarding", tags=["onboarding"])


def collection_write_failed(exc: CollectionWriteError) -> HTTPException:
    """500 with the body shape the web client expects for a failed save."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": f"Failed to save {exc.collection}",
            "details": exc.message,
        },
    )


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    response_model=OnboardingSubmitResponse,
)
async def submit(
    payload: OnboardingSubmitRequest,
    user_id: str = Depends(get_current_user_id),
) -> OnboardingSubmitResponse:
    """
    Persist a complete onboarding submission.

    Returns:
        200: {"success": true}
        400: Payload failed validation ("Invalid data format").
        401: Missing or invalid authentication token.
        500: A table write failed ("Failed to save <collection>"); rows
             written before the failure have been rolled back.
    """
    client = get_service_client()

    try:
        submit_onboarding(client, user_id, payload)
    except CollectionWriteError as exc:
        raise collection_write_failed(exc)
    except Exception as exc:
        logger.error("Onboarding submit failed for user %s: %s", user_id[:8], exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return OnboardingSubmitResponse(success=True)


async def read_onboarding_record(user_id: str) -> OnboardingGetResponse:
    """Shared by GET /onboarding and GET /profile."""
    client = get_service_client()
    try:
        record, is_complete = await load_onboarding_record(client, user_id)
    except Exception as exc:
        logger.error("Failed to load onboarding record for user %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    return OnboardingGetResponse(data=record, is_onboarding_complete=is_complete)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=OnboardingGetResponse,
)
async def get_onboarding(
    user_id: str = Depends(get_current_user_id),
) -> OnboardingGetResponse:
    """
    Return the user's onboarding record.

    Never 404s: a user with no rows at all gets a record made entirely
    of defaults and isOnboardingComplete=false.
    """
    return await read_onboarding_record(user_id)
