from __future__ import annotations

import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tutoring.core.config import Settings
from tutoring.main import create_app
from tutoring.models.course import Assignment, Course, Lesson
from tutoring.models.principal import Principal, Role
from tutoring.models.user import User
from tutoring.repos.unit_of_work import InMemoryStore
from tutoring.services import token_service
from tutoring.services.registry import Services, build_services

# Ensure repo root is on sys.path so `import tutoring` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_SETTINGS = Settings(
    app_env="test",
    log_level="info",
    log_json=False,
    port=8000,
    database_url=None,
    redis_url=None,
)


class FakeClock:
    """Deterministic epoch seconds: every call is one second later."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services(store: InMemoryStore, clock: FakeClock) -> Services:
    return build_services(store.unit_of_work, clock)


@pytest.fixture
def app(store: InMemoryStore, clock: FakeClock) -> FastAPI:
    return create_app(TEST_SETTINGS, store=store, clock=clock)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Seeding helpers (the content and user directories are owned elsewhere;
# tests write straight into the in-memory repos)
# ---------------------------------------------------------------------------


def seed_user(
    store: InMemoryStore,
    role: Role = "student",
    *,
    email: str | None = None,
    full_name: str = "",
    active: bool = True,
) -> User:
    user = User.new(email=email or "placeholder@test.com", full_name=full_name, role=role)
    if email is None:
        user = replace(user, email=f"{role}-{user.id.hex[:8]}@test.com")
    if not active:
        user = replace(user, is_active=False)
    asyncio.run(store.users.add(user))
    return user


def seed_course(
    store: InMemoryStore,
    owner: User,
    *,
    title: str = "Algebra I",
    published: bool = True,
    lessons: int = 0,
) -> tuple[Course, list[Lesson]]:
    course = Course.new(owner_id=owner.id, title=title, is_published=published)
    created = [
        Lesson.new(course_id=course.id, order_index=i, title=f"Lesson {i + 1}")
        for i in range(lessons)
    ]

    async def _seed() -> None:
        await store.courses.add_course(course)
        for lesson in created:
            await store.courses.add_lesson(lesson)

    asyncio.run(_seed())
    return course, created


def seed_lesson(
    store: InMemoryStore, course: Course, order_index: int, title: str = ""
) -> Lesson:
    lesson = Lesson.new(course_id=course.id, order_index=order_index, title=title)
    asyncio.run(store.courses.add_lesson(lesson))
    return lesson


def seed_assignment(
    store: InMemoryStore, lesson: Lesson, max_score: int = 100, title: str = "Homework"
) -> Assignment:
    assignment = Assignment.new(lesson_id=lesson.id, title=title, max_score=max_score)
    asyncio.run(store.courses.add_assignment(assignment))
    return assignment


def principal_of(user: User) -> Principal:
    return Principal(user_id=user.id, role=user.role, active=user.is_active)


def mint_token(user: User) -> str:
    """Create a valid ES256 JWT for a seeded user."""
    return token_service.create_access_token(sub=str(user.id))


def auth(user: User | None) -> dict[str, str]:
    if user is None:
        return {}
    return {"Authorization": f"Bearer {mint_token(user)}"}
