from __future__ import annotations

import asyncio
import os
from typing import Any

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Ensure the SQLAlchemy engine is created against sqlite for tests.
    os.environ.setdefault("DB_URL", "sqlite:///./test.db")
    os.environ["ORM_DB_URL"] = "sqlite:///./test.db"
    os.environ["ORM_USE_MYSQL"] = "false"

    # Ensure local .env cannot point tests at real partner APIs.
    os.environ["ENVIRONMENT"] = "test"
    os.environ["OPENAI_API_KEY"] = ""
    os.environ["ONET_API_USERNAME"] = ""
    os.environ["ONET_API_PASSWORD"] = ""
    os.environ["COURSE_RETRY_INITIAL_DELAY_SECONDS"] = "0"


class FakeAIClient:
    """Stands in for OpenAITransferClient; records calls and can stall or fail."""

    def __init__(
        self,
        payload: Any = None,
        explanation: Any = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.payload = payload
        self.explanation = explanation
        self.error = error
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def _respond(self, value: Any) -> Any:
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return value

    async def analyze_transfers(self, current_skills, target_skills, current_role, target_role) -> Any:
        return await self._respond(self.payload)

    async def explain_transfer(self, skill_name, current_context, target_context) -> Any:
        return await self._respond(self.explanation)


class FakeCourseCatalog:
    def __init__(self, courses: dict[str, list] | None = None, error: Exception | None = None, fail_times: int = 0) -> None:
        self.courses = courses or {}
        self.error = error
        self.fail_times = fail_times
        self.calls: list[str] = []

    def search(self, skill_name: str, providers=("Coursera", "Udemy")) -> list:
        self.calls.append(skill_name)
        if self.error is not None and (self.fail_times == 0 or len(self.calls) <= self.fail_times):
            raise self.error
        wanted = {provider.lower() for provider in providers}
        return [course for course in self.courses.get(skill_name, []) if course.provider.lower() in wanted]


@pytest.fixture()
def fresh_db() -> None:
    from skillgap.database import Base, engine
    import skillgap.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db_session(fresh_db) -> Any:
    from skillgap.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def collaborators() -> dict[str, Any]:
    from skillgap.services.analysis_cache import KeyedLocks
    from skillgap.services.occupation_provider import OnetOccupationProvider
    from skillgap.services.performance_monitor import PerformanceMonitor
    from skillgap.services.revenue_validation import RevenueValidator
    from skillgap.services.transferable_matcher import MatcherCache, TransferableSkillsMatcher

    monitor = PerformanceMonitor(buffer_size=100)
    return {
        "monitor": monitor,
        "matcher": TransferableSkillsMatcher(ai_client=None, cache=MatcherCache(), timeout_seconds=0.5, model_name="test-model", monitor=monitor),
        # No credentials: only the occupation_cache table is consulted.
        "occupation_provider": OnetOccupationProvider("https://onet.invalid/ws", None, None, monitor=monitor),
        "course_catalog": FakeCourseCatalog(),
        "revenue_validator": RevenueValidator(),
        "analysis_locks": KeyedLocks(),
    }


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, fresh_db, collaborators) -> Any:
    # Swap external collaborators for in-process fakes; lifespan still wires them onto app.state.
    from skillgap import main

    monkeypatch.setattr(main, "build_collaborators", lambda config: collaborators)

    app = main.create_app()
    with TestClient(app) as c:
        yield c
