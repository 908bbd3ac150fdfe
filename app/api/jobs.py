"""
Jobs API — Scheduled jobs triggered by QStash schedules.

POST /api/v1/jobs/weekly-reminder  — Thursday: remind matchable users that
                                     groups are about to be formed.
POST /api/v1/jobs/feedback-request — Monday: ask members of last week's
                                     groups how their meetup went.
POST /api/v1/jobs/weekly-matches   — Thursday: form this week's groups.

All three require a valid Upstash-Signature (401 otherwise).
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import MATCH_GROUP_SIZE
from app.db.supabase_client import get_service_client
from app.models.jobs import JobResponse
from app.services.compatibility import form_groups, load_matchable_profiles
from app.services.groups import GroupCreateError, create_group
from app.services.notifications import (
    create_notifications_bulk,
    feedback_request_notification,
    group_matched_notification,
    matching_day_notification,
)
from app.services.qstash import require_qstash_signature

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/jobs",
    tags=["jobs"],
    dependencies=[Depends(require_qstash_signature)],
)

FEEDBACK_WINDOW_START_DAYS = 7
FEEDBACK_WINDOW_END_DAYS = 3
MIN_GROUP_SIZE = 2


def _job_failed(error: str, exc: Exception) -> HTTPException:
    logger.error("%s: %s", error, exc, exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error, "details": str(exc)},
    )


# ===================================================================
# POST /api/v1/jobs/weekly-reminder
# ===================================================================

@router.post("/weekly-reminder", response_model=JobResponse)
async def weekly_reminder() -> JobResponse:
    """Send the matching-day reminder to every matchable user."""
    client = get_service_client()
    now = datetime.now(timezone.utc)

    try:
        users = (
            client.table("profiles")
            .select("id")
            .eq("is_matchable", True)
            .execute()
        ).data or []
    except Exception as exc:
        raise _job_failed("Failed to fetch matchable users", exc)

    if not users:
        logger.info("Weekly reminder: no matchable users to notify")
        return JobResponse(
            message="No matchable users to notify",
            timestamp=now.isoformat(),
        )

    rows = [matching_day_notification(user["id"], now.isoformat()) for user in users]

    try:
        sent = create_notifications_bulk(client, rows)
    except Exception as exc:
        raise _job_failed("Failed to create notifications", exc)

    logger.info("Weekly reminder: sent %d reminders", sent)
    return JobResponse(
        message="Weekly reminders sent successfully",
        notifications_sent=sent,
        timestamp=now.isoformat(),
    )


# ===================================================================
# POST /api/v1/jobs/feedback-request
# ===================================================================

@router.post("/feedback-request", response_model=JobResponse)
async def feedback_request() -> JobResponse:
    """
    Ask for feedback on groups formed 3-7 days ago.

    Members who already left feedback for their group are skipped.
    """
    client = get_service_client()
    now = datetime.now(timezone.utc)
    window_start = now - timedelta(days=FEEDBACK_WINDOW_START_DAYS)
    window_end = now - timedelta(days=FEEDBACK_WINDOW_END_DAYS)

    try:
        groups = (
            client.table("groups")
            .select("id, name, created_at")
            .gte("created_at", window_start.isoformat())
            .lt("created_at", window_end.isoformat())
            .execute()
        ).data or []
    except Exception as exc:
        raise _job_failed("Failed to fetch recent groups", exc)

    if not groups:
        logger.info("Feedback request: no recent groups")
        return JobResponse(
            message="No recent groups to request feedback for",
            groups_processed=0,
            timestamp=now.isoformat(),
        )

    group_ids = [g["id"] for g in groups]
    try:
        members = (
            client.table("group_members")
            .select("group_id, user_id")
            .in_("group_id", group_ids)
            .execute()
        ).data or []
        feedback = (
            client.table("group_feedback")
            .select("group_id, user_id")
            .in_("group_id", group_ids)
            .execute()
        ).data or []
    except Exception as exc:
        raise _job_failed("Failed to fetch group members", exc)

    already_answered = {(f["group_id"], f["user_id"]) for f in feedback}
    group_names = {g["id"]: g.get("name") or "your group" for g in groups}

    rows = [
        feedback_request_notification(m["user_id"], group_names[m["group_id"]], m["group_id"])
        for m in members
        if (m["group_id"], m["user_id"]) not in already_answered
    ]

    try:
        sent = create_notifications_bulk(client, rows)
    except Exception as exc:
        raise _job_failed("Failed to create notifications", exc)

    logger.info("Feedback request: %d groups, %d notifications", len(groups), sent)
    return JobResponse(
        message="Feedback requests sent successfully",
        groups_processed=len(groups),
        notifications_sent=sent,
        timestamp=now.isoformat(),
    )


# ===================================================================
# POST /api/v1/jobs/weekly-matches
# ===================================================================

@router.post("/weekly-matches", response_model=JobResponse)
async def weekly_matches() -> JobResponse:
    """
    Form this week's groups from the matchable pool.

    A group whose insert fails is skipped and logged, and a group whose
    members could not be added is removed again. The rest of the run
    continues. The run summary is written to activity_logs.
    """
    client = get_service_client()
    now = datetime.now(timezone.utc)
    label = now.strftime("%Y-%m-%d")

    try:
        profiles = load_matchable_profiles(client)
    except Exception as exc:
        raise _job_failed("Failed to fetch matchable users", exc)

    if not profiles:
        logger.info("Weekly matches: no matchable users")
        return JobResponse(
            message="No matchable users to process",
            matchable_users=0,
            groups_created=0,
            users_matched=0,
            timestamp=now.isoformat(),
        )

    groups = form_groups(profiles, group_size=MATCH_GROUP_SIZE, min_size=MIN_GROUP_SIZE)
    groups_created = 0
    users_matched = 0
    notifications_sent = 0

    for index, member_ids in enumerate(groups, start=1):
        name = f"Group {index} - {label}"
        try:
            group_id = create_group(
                client, name, member_ids, description=f"Matched on {label}",
            )
        except GroupCreateError as exc:
            logger.error("Weekly matches: skipping %s: %s", name, exc)
            continue

        groups_created += 1
        users_matched += len(member_ids)

        try:
            notifications_sent += create_notifications_bulk(client, [
                group_matched_notification(uid, name, group_id) for uid in member_ids
            ])
        except Exception as exc:
            logger.warning("Weekly matches: notifications for %s failed: %s", name, exc)

    try:
        client.table("activity_logs").insert({
            "action": "weekly_matching_completed",
            "details": {
                "timestamp": now.isoformat(),
                "groups_created": groups_created,
                "users_matched": users_matched,
                "total_matchable_users": len(profiles),
            },
        }).execute()
    except Exception as exc:
        logger.warning("Weekly matches: failed to write activity log: %s", exc)

    logger.info(
        "Weekly matches: %d groups, %d users matched of %d",
        groups_created, users_matched, len(profiles),
    )
    return JobResponse(
        message="Weekly matching completed successfully",
        matchable_users=len(profiles),
        groups_created=groups_created,
        users_matched=users_matched,
        notifications_sent=notifications_sent,
        timestamp=now.isoformat(),
    )
