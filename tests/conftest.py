"""Shared test fixtures."""

from __future__ import annotations

import os
import time
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

# Settings are cached on first use; point them at the test stack before importing glit
os.environ["GLIT_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GLIT_JWT_ALGORITHM"] = "HS256"
os.environ["GLIT_JWT_SECRET"] = "test-secret-for-glit-rewards-suite-0123456789"
os.environ["GLIT_LOG_FORMAT"] = "console"

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from glit.config import get_settings
from glit.database import close_db, get_engine, get_session_factory, init_db
from glit.db.base import Base
from glit.db.models import Exercise, ExerciseAttempt
from glit.engine_config import EngineConfig, get_engine_config

get_settings.cache_clear()
get_engine_config.cache_clear()

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)  # a Wednesday


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the engine uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.published: list[tuple[str, str]] = []

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.store.pop(key, None)
            self.expiry.pop(key, None)

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        self._purge(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
        return True

    async def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self.store:
            return -2
        deadline = self.expiry.get(key)
        if deadline is None:
            return -1
        return max(1, int(deadline - time.monotonic() + 0.999))

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def ping(self) -> bool:
        return True


class FailingRedis(FakeRedis):
    async def publish(self, channel: str, message: str) -> int:
        raise ConnectionError("redis down")


def make_token(user_id: str, role: str = "student", tenant_id: str | None = "tenant-1") -> str:
    settings = get_settings()
    payload: dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "tenant_id": tenant_id,
        "iss": settings.jwt_issuer,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str, role: str = "student") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


TRUE_FALSE_CONTENT = {
    "statements": [
        {"text": "Chichen Itza is in Yucatan", "correctAnswer": True},
        {"text": "The Maya used a base-10 system", "correctAnswer": False},
        {"text": "Cacao was used as currency", "correctAnswer": True},
        {"text": "Tikal is in Peru", "correctAnswer": False},
    ]
}
TRUE_FALSE_PERFECT = {"responses": [True, False, True, False]}


async def add_exercise(
    db: AsyncSession,
    exercise_id: str = "ex-1",
    exercise_type: str = "verdadero_falso",
    module_id: str | None = "module-1",
    difficulty: str = "easy",
    coins: int | None = 20,
    xp: int | None = 40,
    passing_score: int | None = 70,
    estimated_minutes: int | None = 10,
    content: dict[str, Any] | None = None,
    is_active: bool = True,
) -> Exercise:
    exercise = Exercise(
        id=exercise_id,
        module_id=module_id,
        title=exercise_id,
        exercise_type=exercise_type,
        difficulty=difficulty,
        ml_coins_reward=coins,
        xp_reward=xp,
        passing_score=passing_score,
        estimated_time_minutes=estimated_minutes,
        content=TRUE_FALSE_CONTENT if content is None else content,
        is_active=is_active,
    )
    db.add(exercise)
    await db.commit()
    return exercise


async def add_attempt(
    db: AsyncSession,
    user_id: str,
    exercise_id: str = "ex-1",
    score: int = 100,
    is_passing: bool = True,
    exercise_type: str = "verdadero_falso",
    module_id: str | None = "module-1",
    session_id: str | None = None,
    submitted_at: datetime | None = None,
) -> ExerciseAttempt:
    submitted_at = submitted_at or NOW
    attempt = ExerciseAttempt(
        user_id=user_id,
        exercise_id=exercise_id,
        module_id=module_id,
        exercise_type=exercise_type,
        session_id=session_id,
        raw_score=float(score),
        score=score,
        is_passing=is_passing,
        is_perfect=score == 100,
        started_at=submitted_at - timedelta(minutes=2),
        submitted_at=submitted_at,
    )
    db.add(attempt)
    await db.commit()
    return attempt


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory schema per test."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test database and fake Redis."""
    from glit.dependencies import get_redis_dep
    from glit.main import create_app

    app = create_app()

    async def _redis_override() -> AsyncGenerator[FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_redis_dep] = _redis_override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
