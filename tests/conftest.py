"""
Shared fixtures: an in-memory stand-in for the Supabase client and a
FastAPI test client wired to it.

The fake supports the subset of the PostgREST query builder the app
uses (select/insert/upsert/update/delete with eq, neq, in_, gte, lt,
ilike, or_, order, range and limit) and can be told to fail a given
table operation so error paths are reachable without a real project.
"""

import copy
import re
import uuid
from contextlib import ExitStack
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.core.security import get_current_user_id
from app.main import app

TEST_USER_ID = "11111111-aaaa-4bbb-8ccc-000000000001"
OTHER_USER_ID = "22222222-aaaa-4bbb-8ccc-000000000002"

# Every module that resolves its own Supabase client.
SERVICE_CLIENT_TARGETS = (
    "app.api.onboarding.get_service_client",
    "app.api.profile.get_service_client",
    "app.api.notifications.get_service_client",
    "app.api.groups.get_service_client",
    "app.api.matches.get_service_client",
    "app.api.admin.get_service_client",
    "app.api.jobs.get_service_client",
    "app.api.users.get_service_client",
    "app.core.permissions.get_service_client",
)


# ---------------------------------------------------------------------------
# Fake Supabase client
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _like(pattern: str, value) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload = None
        self.on_conflict = "id"
        self.filters = []
        self.order_by = []
        self.row_range = None
        self.row_limit = None

    # --- operations ---
    def select(self, columns="*", count=None):
        self.op, self.columns, self.count_mode = "select", columns, count
        return self

    def insert(self, rows):
        self.op, self.payload = "insert", rows
        return self

    def upsert(self, rows, on_conflict="id"):
        self.op, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def delete(self):
        self.op = "delete"
        return self

    # --- filters ---
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] < value)
        return self

    def ilike(self, column, pattern):
        self.filters.append(lambda row: _like(pattern, row.get(column)))
        return self

    def or_(self, expression):
        clauses = []
        for clause in expression.split(","):
            column, operator, value = clause.split(".", 2)
            assert operator in ("ilike", "eq"), f"unsupported or_ operator {operator}"
            clauses.append((column, operator, value))

        def matches(row):
            return any(
                _like(value, row.get(column)) if operator == "ilike" else row.get(column) == value
                for column, operator, value in clauses
            )

        self.filters.append(matches)
        return self

    def order(self, column, desc=False):
        self.order_by.append((column, desc))
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    # --- execution ---
    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def _project(self, row: dict) -> dict:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        wanted = [c.strip() for c in self.columns.split(",")]
        return {c: copy.deepcopy(row[c]) for c in wanted if c in row}

    def execute(self):
        self.db.calls.append((self.table_name, self.op))
        error = self.db.failures.get((self.table_name, self.op))
        if error is not None:
            raise error

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "select":
            selected = [r for r in rows if self._matches(r)]
            for column, desc in reversed(self.order_by):
                selected.sort(
                    key=lambda r: (r.get(column) is None, r.get(column) or ""),
                    reverse=desc,
                )
            count = len(selected) if self.count_mode == "exact" else None
            if self.row_range is not None:
                start, end = self.row_range
                selected = selected[start:end + 1]
            if self.row_limit is not None:
                selected = selected[:self.row_limit]
            return FakeResult([self._project(r) for r in selected], count)

        if self.op == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = [self.db.add_row(self.table_name, r) for r in new_rows]
            return FakeResult(copy.deepcopy(stored))

        if self.op == "upsert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for new in new_rows:
                key = new.get(self.on_conflict)
                existing = next((r for r in rows if r.get(self.on_conflict) == key), None)
                if existing is not None and key is not None:
                    existing.update(copy.deepcopy(new))
                    stored.append(existing)
                else:
                    stored.append(self.db.add_row(self.table_name, new))
            return FakeResult(copy.deepcopy(stored))

        if self.op == "update":
            updated = [r for r in rows if self._matches(r)]
            for r in updated:
                r.update(copy.deepcopy(self.payload))
            return FakeResult(copy.deepcopy(updated))

        if self.op == "delete":
            deleted = [r for r in rows if self._matches(r)]
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResult(copy.deepcopy(deleted))

        raise AssertionError(f"unknown op {self.op}")


class FakeSupabase:
    """In-memory tables keyed by name; rows are plain dicts."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def add_row(self, table: str, row: dict) -> dict:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        if "created_at" not in stored:
            self._clock += timedelta(seconds=1)
            stored["created_at"] = self._clock.isoformat()
        self.tables.setdefault(table, []).append(stored)
        return stored

    def seed(self, table: str, *rows: dict) -> list[dict]:
        return [self.add_row(table, r) for r in rows]

    def rows(self, table: str, **filters) -> list[dict]:
        return [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]

    def fail(self, table: str, op: str, message: str = "simulated database error") -> None:
        self.failures[(table, op)] = Exception(message)

    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[1] != "select"]


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

def valid_onboarding_payload() -> dict:
    """A complete submission in the camelCase shape the web client sends."""
    return {
        "step1": {
            "gender": "Female",
            "genderPreference": "Mixed groups preferred",
            "city": "Chicago",
            "nationality": "Canadian",
        },
        "step2": {
            "medicalSpecialties": ["Cardiology", "Internal Medicine"],
            "specialtyPreference": "Different specialties preferred",
            "careerStage": "Resident (3rd+ year)",
        },
        "step3": {
            "sports": [{"sport": "Tennis", "interest": 4}, {"sport": "Running", "interest": 2}],
            "activityLevel": "Active (3-4 times/week)",
        },
        "step4": {
            "musicPreferences": ["Jazz"],
            "moviePreferences": ["Documentary", "Drama"],
            "otherInterests": [],
        },
        "step5": {
            "meetingActivities": ["Coffee", "Hiking"],
            "socialEnergyLevel": "Moderate energy, prefer small groups",
            "conversationStyle": "Deep, meaningful conversations",
        },
        "step6": {
            "meetingTimes": ["Weekend mornings"],
            "meetingFrequency": "Bi-weekly",
        },
        "step7": {
            "dietaryPreferences": "Vegetarian",
            "lifeStage": "Married, no kids",
            "lookingFor": ["Friendship", "Mentorship"],
        },
        "step8": {"idealWeekend": "Adventure and exploration"},
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def patched_db(fake_db):
    """Route every get_service_client() call in the app to fake_db."""
    with ExitStack() as stack:
        for target in SERVICE_CLIENT_TARGETS:
            stack.enter_context(patch(target, return_value=fake_db))
        yield fake_db


@pytest.fixture
def auth_as():
    """Call auth_as(user_id) to authenticate subsequent requests as that user."""

    def _set(user_id: str = TEST_USER_ID):
        app.dependency_overrides[get_current_user_id] = lambda: user_id

    yield _set
    app.dependency_overrides.pop(get_current_user_id, None)


@pytest.fixture
def client(patched_db, auth_as):
    """Test client authenticated as TEST_USER_ID against the fake database."""
    auth_as(TEST_USER_ID)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anon_client(patched_db):
    """Test client with no auth override (real bearer-token validation)."""
    with TestClient(app) as test_client:
        yield test_client
