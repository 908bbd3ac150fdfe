"""
Onboarding Aggregator — Persist a complete 8-step onboarding submission.

The submission fans out to eight tables. Writes run in a fixed order
with the profile flags (is_onboarding_complete, is_matchable) written
last, so a user is never marked complete while a related table is
missing. If any write fails, every touched table is restored from a
snapshot taken before the first write and the failure is re-raised.
"""

import logging

from app.core.exceptions import CollectionWriteError
from app.models.onboarding import OnboardingSubmitRequest
from app.services import profile_tables as tables
from app.services.notifications import notify_profile_complete

logger = logging.getLogger(__name__)


def submit_onboarding(client, user_id: str, payload: OnboardingSubmitRequest) -> None:
    """
    Write a validated onboarding payload for user_id.

    Raises:
        CollectionWriteError: A write failed. Prior rows have been
            restored (best effort) before the error propagates.
    """
    snapshot = tables.snapshot_tables(client, user_id, tables.ALL_TABLES)
    now = tables.utc_now_iso()

    try:
        tables.upsert_singleton(
            client, tables.MEDICAL_PROFILES, user_id,
            tables.medical_values(payload.step1, payload.step2, now),
        )
        tables.upsert_singleton(
            client, tables.ACTIVITY_LEVELS, user_id,
            tables.activity_level_values(payload.step3),
        )
        tables.replace_rows(
            client, tables.USER_ACTIVITIES, user_id,
            tables.sport_rows(user_id, payload.step3.sports),
        )
        tables.replace_rows(
            client, tables.USER_INTERESTS, user_id,
            tables.interest_rows(user_id, payload.step4),
        )
        tables.upsert_singleton(
            client, tables.SOCIAL_PREFERENCES, user_id,
            tables.social_values(payload.step5, payload.step7, payload.step8, now),
        )
        tables.upsert_singleton(
            client, tables.AVAILABILITY, user_id,
            tables.availability_values(payload.step6, now),
        )
        tables.upsert_singleton(
            client, tables.LIFESTYLE, user_id,
            tables.lifestyle_values(payload.step7, now),
        )

        # Flags go last: completion is only visible once everything else landed.
        tables.update_profile(client, user_id, {
            **tables.profile_values(payload.step1, now),
            "is_onboarding_complete": True,
            "is_matchable": True,
        })

    except CollectionWriteError as exc:
        logger.error(
            "Onboarding submit failed for user %s at %s; restoring snapshot",
            user_id[:8], exc.collection,
        )
        tables.restore_from_snapshot(client, user_id, snapshot)
        raise

    logger.info(
        "Onboarding completed for user %s (sports=%d, interests=%d)",
        user_id[:8],
        len(payload.step3.sports),
        len(tables.interest_rows(user_id, payload.step4)),
    )

    # Best-effort: a failed notification never fails the submit.
    notify_profile_complete(client, user_id)
