from __future__ import annotations

import os
from types import SimpleNamespace
from uuid import uuid4

import pytest

# Settings are read at import time; the secret and the DB password have no defaults.
os.environ.setdefault("VCA_JWT_SECRET", "test-secret-value-that-is-at-least-32-chars")
os.environ.setdefault("VCA_POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("VCA_APP_ENV", "test")


class _NestedTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _Result:
    def __init__(self, value=None):
        self._value = value

    def scalar_one_or_none(self):
        return self._value

    def scalar_one(self):
        return self._value


class DbSessionStub:
    """Records writes; `execute` answers every statement with `execute_value`."""

    def __init__(self, execute_value=None):
        self.added: list = []
        self.deleted: list = []
        self.executed: list = []
        self.flush_count = 0
        self.commit_count = 0
        self.execute_value = execute_value

    def add(self, obj) -> None:
        self.added.append(obj)

    async def commit(self) -> None:
        self.commit_count += 1

    async def rollback(self) -> None:
        return None

    async def delete(self, obj) -> None:
        self.deleted.append(obj)

    async def flush(self) -> None:
        self.flush_count += 1

    def begin_nested(self):
        return _NestedTransaction()

    async def execute(self, stmt, params=None):
        self.executed.append((stmt, params))
        return _Result(self.execute_value)


def make_analysis(**overrides):
    from app.models import AnalysisStatus

    values = {
        "id": uuid4(),
        "user_id": uuid4(),
        "status": AnalysisStatus.APPROVED,
        "production_stage": None,
        "production_notes": None,
        "content_id": None,
        "is_dissolved": False,
        "rejection_count": 0,
        "disapproval_count": 0,
        "production_started_at": None,
        "production_completed_at": None,
        "planned_date": None,
        "deadline": None,
        "profile_id": None,
        "last_disapproved_at": None,
        "disapproval_reason": None,
        "posting_platform": None,
        "posting_caption": None,
        "posting_heading": None,
        "posting_hashtags": None,
        "scheduled_post_time": None,
        "posted_url": None,
        "posted_at": None,
        "posted_urls": [],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_user(role=None, **overrides):
    from app.models import ADMIN_ROLES, UserRole

    role = role or UserRole.SCRIPT_WRITER
    values = {
        "id": uuid4(),
        "email": f"{role.value.lower()}@example.com",
        "full_name": role.value.title(),
        "role": role,
        "is_trusted_writer": False,
        "is_admin": role in ADMIN_ROLES,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def db() -> DbSessionStub:
    return DbSessionStub()
