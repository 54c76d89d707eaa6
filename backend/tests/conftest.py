"""
Pytest configuration and fixtures for the Giyas API tests
=========================================================
The router tests run against ``FakeSupabase``, a small in-memory stand-in
for the supabase-py query builder. It supports the subset of the chain
API the routers use (select/insert/update/delete, the eq/gte/ilike/in_
filters, order/limit/range, maybe_single) so a test can seed rows, call
an endpoint, and then assert on what ended up in the tables.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.services.ai_gateway import GatewayUnavailable
from app.services.ai_service import AIService

USER_ID = str(uuid.uuid4())
OTHER_USER_ID = str(uuid.uuid4())
VALID_TOKEN = "fake-valid-token"
OTHER_TOKEN = "fake-other-token"

AUTH_HEADER = {"Authorization": f"Bearer {VALID_TOKEN}"}
OTHER_AUTH_HEADER = {"Authorization": f"Bearer {OTHER_TOKEN}"}

_ROUTER_MODULES = ("mood", "study", "chat", "users")


# ---------------------------------------------------------------------------
# In-memory Supabase
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sort_key(value: Any) -> tuple:
    # None sorts first, like Postgres NULLS FIRST on ascending order
    return (value is not None, value if value is not None else "")


class FakeQuery:
    """One ``db.table(name)...execute()`` chain."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list = []
        self._order: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._single = False
        self._count: Optional[str] = None

    # --- operations -------------------------------------------------------

    def select(self, columns: str = "*", count: Optional[str] = None) -> FakeQuery:
        self._op = "select"
        self._count = count
        return self

    def insert(self, payload) -> FakeQuery:
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict) -> FakeQuery:
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> FakeQuery:
        self._op = "delete"
        return self

    # --- filters ----------------------------------------------------------

    def _add(self, column: str, predicate) -> FakeQuery:
        self._filters.append((column, predicate))
        return self

    def eq(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v == value)

    def neq(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v != value)

    def gt(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v is not None and v > value)

    def gte(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v is not None and v >= value)

    def lt(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v is not None and v < value)

    def lte(self, column: str, value) -> FakeQuery:
        return self._add(column, lambda v: v is not None and v <= value)

    def ilike(self, column: str, pattern: str) -> FakeQuery:
        needle = pattern.strip("%").lower()
        return self._add(column, lambda v: v is not None and needle in str(v).lower())

    def in_(self, column: str, values) -> FakeQuery:
        allowed = set(values)
        return self._add(column, lambda v: v in allowed)

    # --- modifiers --------------------------------------------------------

    def order(self, column: str, desc: bool = False) -> FakeQuery:
        self._order.append((column, desc))
        return self

    def limit(self, n: int) -> FakeQuery:
        self._limit = n
        return self

    def range(self, start: int, end: int) -> FakeQuery:
        self._range = (start, end)
        return self

    def maybe_single(self) -> FakeQuery:
        self._single = True
        return self

    # --- execution --------------------------------------------------------

    def _matches(self, row: dict) -> bool:
        return all(predicate(row.get(column)) for column, predicate in self._filters)

    def execute(self):
        rows = self._db.tables.setdefault(self._table, [])
        self._db.calls.append((self._table, self._op))

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = {
                    "id": str(uuid.uuid4()),
                    "created_at": _now_iso(),
                    "updated_at": _now_iso(),
                    **copy.deepcopy(item),
                }
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted, count=None)

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        for column, desc in reversed(self._order):
            matched.sort(key=lambda r: _sort_key(r.get(column)), reverse=desc)

        total = len(matched) if self._count else None
        if self._range is not None:
            start, end = self._range
            matched = matched[start:end + 1]
        if self._limit is not None:
            matched = matched[: self._limit]

        data = copy.deepcopy(matched)
        if self._single:
            # supabase-py returns None instead of a response when no row matches
            if not data:
                return None
            return SimpleNamespace(data=data[0], count=total)
        return SimpleNamespace(data=data, count=total)


class FakeSupabase:
    """Tables are plain lists of dicts; ``auth.get_user`` resolves known tokens."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self._tokens: dict[str, str] = {}
        self.auth = MagicMock()
        self.auth.get_user.side_effect = self._get_user

    def _get_user(self, token: str):
        if token not in self._tokens:
            raise Exception("Invalid token")
        return SimpleNamespace(user=SimpleNamespace(id=self._tokens[token]))

    def add_user(self, token: str, row: dict) -> dict:
        self._tokens[token] = row["id"]
        self.tables.setdefault("users", []).append(row)
        return row

    def seed(self, table: str, **fields) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "created_at": _now_iso(),
            "updated_at": _now_iso(),
            **fields,
        }
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.add_user(VALID_TOKEN, {
        "id": USER_ID,
        "email": "student@giyas.ai",
        "name": "Test Student",
        "preferences": {"language": "en", "timezone": "Asia/Riyadh"},
        "is_active": True,
        "created_at": "2026-09-01T00:00:00+00:00",
        "updated_at": "2026-09-01T00:00:00+00:00",
    })
    db.add_user(OTHER_TOKEN, {
        "id": OTHER_USER_ID,
        "email": "other@giyas.ai",
        "name": "Other Student",
        "preferences": {},
        "is_active": True,
    })
    return db


@pytest.fixture
def ai_gateway() -> MagicMock:
    """Gateway stub. Offline by default; set ``complete`` to answer."""
    gateway = MagicMock()
    gateway.complete = AsyncMock(side_effect=GatewayUnavailable("offline"))
    return gateway


@pytest.fixture
def ai_service(ai_gateway: MagicMock) -> AIService:
    settings = Settings(
        gemini_api_key="test-key",
        enable_ai_analysis=True,
        ai_timeout_seconds=1.0,
    )
    return AIService(settings=settings, gateway=ai_gateway)


@pytest.fixture
def client(fake_db: FakeSupabase, ai_service: AIService):
    """TestClient with Supabase and the AI service swapped for the fixtures above."""
    patches = [patch("app.auth.get_supabase_client", return_value=fake_db)]
    patches += [
        patch(f"app.routers.{name}.get_supabase_client", return_value=fake_db)
        for name in _ROUTER_MODULES
    ]
    patches += [
        patch(f"app.routers.{name}.get_ai_service", return_value=ai_service)
        for name in ("mood", "chat")
    ]

    for p in patches:
        p.start()
    try:
        from app.main import app
        yield TestClient(app)
    finally:
        for p in patches:
            p.stop()
