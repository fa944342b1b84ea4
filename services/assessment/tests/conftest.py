"""Shared fixtures for the Assessment service tests."""

import json
import time
from typing import Callable, Optional

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from packages.common.config import Settings
from services.assessment import models
from services.assessment.app import create_app
from services.assessment.repo import SqlAttemptStore
from services.assessment.workflow import GradingWorkflow

SECRET = "test-secret-with-at-least-thirty-two-bytes"
AUDIENCE = "quizgrade-tests"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_DSN=f"sqlite+aiosqlite:///{tmp_path / 'grading.db'}",
        JWT_PUBLIC_KEY=SECRET,
        JWT_ALGORITHM="HS256",
        OIDC_AUDIENCE=AUDIENCE,
        IO_TIMEOUT_SECONDS=2.0,
    )


@pytest_asyncio.fixture
async def store(settings):
    s = SqlAttemptStore(settings.DATABASE_DSN)
    await s.init_db()
    yield s
    await s.dispose()


class Authoring:
    """Writes tests and questions straight through the store's sessions."""

    def __init__(self, store: SqlAttemptStore) -> None:
        self.Session = store.Session

    async def add_test(self, title: str, max_points: Optional[int] = None) -> int:
        async with self.Session() as session:
            test = models.Test(title=title, max_points=max_points)
            session.add(test)
            await session.commit()
            return test.id

    async def add_question(
        self,
        correct_answers: list[str],
        max_points: int = 1,
        answers: Optional[list[str]] = None,
        test_id: Optional[int] = None,
        type: str = "single",
        index: int = 0,
    ) -> int:
        async with self.Session() as session:
            q = models.Question(
                test_id=test_id,
                index=index,
                type=type,
                answers=json.dumps(answers if answers is not None else correct_answers),
                correct_answers=json.dumps(correct_answers),
                max_points=max_points,
            )
            session.add(q)
            await session.commit()
            return q.id

    async def delete_question(self, question_id: int) -> None:
        async with self.Session() as session:
            await session.delete(await session.get(models.Question, question_id))
            await session.commit()


@pytest.fixture
def authoring(store) -> Authoring:
    return Authoring(store)


@pytest.fixture
def workflow(store, settings) -> GradingWorkflow:
    return GradingWorkflow(store, timeout=settings.IO_TIMEOUT_SECONDS)


@pytest_asyncio.fixture
async def client(settings, store):
    # ASGITransport does not run lifespan; the store fixture already created the schema
    app = create_app(settings, store=store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def token() -> Callable[..., str]:
    def make(sub: str = "user-1", roles: tuple[str, ...] = ("USER",), /, **claims) -> str:
        payload = {"sub": sub, "roles": list(roles), "aud": AUDIENCE, "exp": int(time.time()) + 300}
        payload.update(claims)
        return jwt.encode(payload, SECRET, algorithm="HS256")

    return make


@pytest.fixture
def auth(token) -> Callable[..., dict[str, str]]:
    def headers(sub: str = "user-1", *roles: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token(sub, roles or ('USER',))}"}

    return headers
