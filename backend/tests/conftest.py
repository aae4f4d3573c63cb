"""Shared pytest fixtures for BlocklistHub tests.

Provides:
- In-memory fakes for the engine collaborators (store, audit, operators)
- A temporary aiosqlite database per test for repository tests
- Test client (httpx AsyncClient on the FastAPI app)
"""

import asyncio
import os
import tempfile
from dataclasses import replace
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Force test database before the engine module is imported
_TMP_DIR = tempfile.mkdtemp(prefix="blocklisthub-tests-")
os.environ["BH_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/app.db"
os.environ["BH_SLACK_SIGNING_SECRET"] = ""
os.environ["BH_ALLOWED_CHANNELS"] = ""

from blocklisthub.api.deps import get_hub, get_slack
from blocklisthub.core.indicator import DuplicateIndicatorError, Indicator
from blocklisthub.core.kinds import IP, IndicatorKind
from blocklisthub.db.engine import Base, set_sqlite_pragmas
from blocklisthub.main import app
from blocklisthub.services.bulk import BulkCoordinator
from blocklisthub.services.hub import build_hub
from blocklisthub.services.lifecycle import LifecycleEngine
from blocklisthub.services.slack_client import SlackWebClient

ALLOWED_CHANNEL = "C0ALLOWED"


# ── Fakes ─────────────────────────────────────────────────────────────


class InMemoryIndicatorStore:
    """Dict-backed store keyed by lookup key.

    ``delays`` maps a canonical value to seconds of artificial latency on
    lookup; ``fail_on`` lists canonical values whose lookup raises.
    """

    def __init__(
        self,
        kind: IndicatorKind,
        delays: Optional[dict[str, float]] = None,
        fail_on: Optional[set[str]] = None,
    ):
        self.kind = kind
        self.rows: dict[str, Indicator] = {}
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.lookups = 0
        self.writes = 0
        self._next_id = 1

    async def find_by_canonical_value(self, value: str) -> Optional[Indicator]:
        self.lookups += 1
        if value in self.fail_on:
            raise RuntimeError("database is locked")
        delay = self.delays.get(value)
        if delay:
            await asyncio.sleep(delay)
        return self.rows.get(self.kind.lookup_key(value))

    async def find_active_ordered(self) -> list[Indicator]:
        return sorted((r for r in self.rows.values() if r.active), key=lambda r: r.value)

    async def find_all(self) -> list[Indicator]:
        return sorted(self.rows.values(), key=lambda r: r.value)

    async def save(self, indicator: Indicator) -> Indicator:
        self.writes += 1
        if indicator.id is None:
            if indicator.lookup_key in self.rows:
                raise DuplicateIndicatorError(indicator.lookup_key)
            indicator = replace(indicator, id=self._next_id)
            self._next_id += 1
        self.rows[indicator.lookup_key] = indicator
        return indicator


class RecordingAudit:
    def __init__(self):
        self.entries = []

    async def append(self, entry) -> int:
        self.entries.append(entry)
        return len(self.entries)

    @property
    def actions(self) -> list[str]:
        return [e.action.value for e in self.entries]


class StaticOperators:
    """Maps every Slack user to a stable small integer."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.ids: dict[str, int] = {}
        self.calls = 0

    async def resolve_actor(self, slack_user_id: str, team_id: Optional[str] = None) -> int:
        self.calls += 1
        if self.fail:
            raise RuntimeError("directory unavailable")
        return self.ids.setdefault(slack_user_id, len(self.ids) + 1)


@pytest.fixture
def make_engine():
    """Factory: ``make_engine(kind, **store_kwargs) -> LifecycleEngine`` over fakes."""

    def _make(kind: IndicatorKind = IP, **store_kwargs) -> LifecycleEngine:
        return LifecycleEngine(
            kind,
            InMemoryIndicatorStore(kind, **store_kwargs),
            RecordingAudit(),
            StaticOperators(),
        )

    return _make


@pytest.fixture
def ip_engine(make_engine) -> LifecycleEngine:
    return make_engine(IP)


@pytest.fixture
def ip_bulk(ip_engine) -> BulkCoordinator:
    return BulkCoordinator(ip_engine, max_items=500, concurrency=10)


# ── Database fixtures ─────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh file-backed SQLite database per test (NullPool, like the app engine)."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db",
        poolclass=NullPool,
        echo=False,
    )
    event.listen(engine.sync_engine, "connect", set_sqlite_pragmas)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ── App fixtures ──────────────────────────────────────────────────────


class SlackRecorder:
    """Captures outbound Slack traffic through an httpx MockTransport."""

    def __init__(self):
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/users.info"):
            return httpx.Response(200, json={"ok": False, "error": "user_not_found"})
        return httpx.Response(200, json={"ok": True})

    def posts_to(self, suffix: str) -> list:
        return [r for r in self.requests if str(r.url).endswith(suffix)]


@pytest.fixture
def slack_recorder() -> SlackRecorder:
    return SlackRecorder()


@pytest_asyncio.fixture
async def slack_client(slack_recorder) -> AsyncGenerator[SlackWebClient, None]:
    client = SlackWebClient(
        bot_token="xoxb-test",
        base_url="https://slack.test/api",
        timeout=2.0,
        transport=httpx.MockTransport(slack_recorder.handler),
    )
    yield client
    await client.cleanup()


@pytest.fixture
def hub(session_factory, slack_client):
    return build_hub(session_factory, slack_client, static_channels=[ALLOWED_CHANNEL])


@pytest_asyncio.fixture
async def client(hub, slack_client) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the hub and Slack client overridden."""
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_slack] = lambda: slack_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
