"""
Notifications API Verification

Tests that:
1. GET /api/v1/notifications lists only the caller's rows, newest first,
   with total and unread counts
2. unread_only, limit and offset narrow the list
3. Marking one / all read and deleting are scoped to the caller
4. Another user's notification id is a 404
5. The notification templates build the rows the app sends, and single
   inserts never raise

Run with: pytest tests/test_notifications_api.py -v
"""

import pytest

from conftest import FakeSupabase, OTHER_USER_ID, TEST_USER_ID
from app.services import notifications as notification_service


def _seed(db):
    return db.seed(
        "notifications",
        {"user_id": TEST_USER_ID, "title": "Old", "message": "m1", "type": "info",
         "is_read": True, "created_at": "2025-01-01T00:00:00+00:00"},
        {"user_id": TEST_USER_ID, "title": "Newer", "message": "m2", "type": "match",
         "is_read": False, "created_at": "2025-01-02T00:00:00+00:00"},
        {"user_id": TEST_USER_ID, "title": "Newest", "message": "m3", "type": "group",
         "is_read": False, "created_at": "2025-01-03T00:00:00+00:00"},
        {"user_id": OTHER_USER_ID, "title": "Not yours", "message": "m4", "type": "info",
         "is_read": False, "created_at": "2025-01-04T00:00:00+00:00"},
    )


class TestListNotifications:
    def test_newest_first_and_scoped(self, client, patched_db):
        _seed(patched_db)
        resp = client.get("/api/v1/notifications")
        assert resp.status_code == 200
        body = resp.json()
        assert [n["title"] for n in body["notifications"]] == ["Newest", "Newer", "Old"]
        assert body["total"] == 3
        assert body["unread_count"] == 2

    def test_unread_only(self, client, patched_db):
        _seed(patched_db)
        body = client.get("/api/v1/notifications", params={"unread_only": True}).json()
        assert [n["title"] for n in body["notifications"]] == ["Newest", "Newer"]
        assert body["total"] == 2

    def test_pagination(self, client, patched_db):
        _seed(patched_db)
        body = client.get("/api/v1/notifications", params={"limit": 1, "offset": 1}).json()
        assert [n["title"] for n in body["notifications"]] == ["Newer"]
        assert body["total"] == 3

    def test_limit_bounds(self, client, patched_db):
        assert client.get("/api/v1/notifications", params={"limit": 0}).status_code == 400

    def test_unread_count_endpoint(self, client, patched_db):
        _seed(patched_db)
        assert client.get("/api/v1/notifications/unread-count").json() == {"count": 2}


class TestMarkRead:
    def test_mark_one(self, client, patched_db):
        rows = _seed(patched_db)
        target = rows[1]["id"]
        resp = client.post(f"/api/v1/notifications/{target}/read")
        assert resp.status_code == 200
        assert resp.json() == {"status": "read", "notification_id": target}
        assert patched_db.rows("notifications", id=target)[0]["is_read"] is True

    def test_mark_all(self, client, patched_db):
        _seed(patched_db)
        resp = client.post("/api/v1/notifications/read-all")
        assert resp.json()["updated"] == 2
        assert all(r["is_read"] for r in patched_db.rows("notifications", user_id=TEST_USER_ID))
        # The other user's unread notification is untouched.
        assert patched_db.rows("notifications", user_id=OTHER_USER_ID)[0]["is_read"] is False

    def test_other_users_notification_is_404(self, client, patched_db):
        rows = _seed(patched_db)
        resp = client.post(f"/api/v1/notifications/{rows[3]['id']}/read")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Notification not found."}
        assert patched_db.rows("notifications", id=rows[3]["id"])[0]["is_read"] is False


class TestDeleteNotification:
    def test_delete_own(self, client, patched_db):
        rows = _seed(patched_db)
        resp = client.delete(f"/api/v1/notifications/{rows[0]['id']}")
        assert resp.status_code == 200
        assert patched_db.rows("notifications", id=rows[0]["id"]) == []

    def test_delete_other_users(self, client, patched_db):
        rows = _seed(patched_db)
        resp = client.delete(f"/api/v1/notifications/{rows[3]['id']}")
        assert resp.status_code == 404
        assert len(patched_db.rows("notifications", id=rows[3]["id"])) == 1

    def test_requires_auth(self, anon_client):
        assert anon_client.delete("/api/v1/notifications/abc").status_code == 401


class TestNotificationService:
    def test_build_notification_defaults(self):
        row = notification_service.build_notification(TEST_USER_ID, "T", "M")
        assert row == {
            "user_id": TEST_USER_ID,
            "title": "T",
            "message": "M",
            "type": "info",
            "link": None,
            "metadata": {},
            "is_read": False,
        }

    def test_create_notification_returns_row(self):
        db = FakeSupabase()
        row = notification_service.notify_profile_complete(db, TEST_USER_ID)
        assert row["type"] == "success"
        assert row["metadata"] == {"type": "profile_complete"}
        assert len(db.rows("notifications")) == 1

    @pytest.mark.parametrize("builder, args, expected_type, expected_kind", [
        (notification_service.profile_complete_notification, (), "success", "profile_complete"),
        (notification_service.matching_day_notification, ("2025-01-02T00:00:00+00:00",),
         "system", "matching_day"),
        (notification_service.feedback_request_notification, ("Group 1", "g-1"),
         "system", "feedback_request"),
        (notification_service.group_matched_notification, ("Group 1", "g-1"),
         "group", "group_matched"),
    ])
    def test_templates(self, builder, args, expected_type, expected_kind):
        row = builder(TEST_USER_ID, *args)
        assert row["user_id"] == TEST_USER_ID
        assert row["type"] == expected_type
        assert row["metadata"]["type"] == expected_kind
        assert row["is_read"] is False

    def test_group_templates_link_to_the_group(self):
        for builder in (
            notification_service.feedback_request_notification,
            notification_service.group_matched_notification,
        ):
            row = builder(TEST_USER_ID, "Group 1", "g-1")
            assert row["link"] == "/dashboard/groups/g-1"
            assert "Group 1" in row["message"]
            assert row["metadata"]["group_id"] == "g-1"

    def test_create_notification_swallows_errors(self):
        db = FakeSupabase()
        db.fail("notifications", "insert")
        assert notification_service.notify_profile_complete(db, TEST_USER_ID) is None

    def test_bulk_insert(self):
        db = FakeSupabase()
        rows = [
            notification_service.build_notification(uid, "Hi", "There", type="system")
            for uid in (TEST_USER_ID, OTHER_USER_ID)
        ]
        assert notification_service.create_notifications_bulk(db, rows) == 2
        assert notification_service.create_notifications_bulk(db, []) == 0
        assert len(db.rows("notifications", type="system")) == 2

    def test_unread_count_zero_on_error(self):
        db = FakeSupabase()
        db.fail("notifications", "select")
        assert notification_service.get_unread_count(db, TEST_USER_ID) == 0
