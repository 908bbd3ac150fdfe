"""
Job Models — Response schema shared by the scheduled-job webhooks.

POST /api/v1/jobs/weekly-reminder
POST /api/v1/jobs/feedback-request
POST /api/v1/jobs/weekly-matches
"""

from typing import Optional

from app.models.onboarding import CamelModel


class JobResponse(CamelModel):
    """Summary of one job run. Counters not relevant to a job stay None."""

    success: bool = True
    message: str
    notifications_sent: int = 0
    groups_processed: Optional[int] = None
    matchable_users: Optional[int] = None
    groups_created: Optional[int] = None
    users_matched: Optional[int] = None
    timestamp: str
