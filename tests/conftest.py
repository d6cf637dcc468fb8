# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import moderation_core.models  # noqa: F401  (populate metadata)
from moderation_core.core.settings import Settings
from moderation_core.db.session import Base
from moderation_core.db.session import get_db as app_get_session
from moderation_core.main import create_app
from moderation_core.models import ContentFlag, ContentFlagType, ContentType, Report
from moderation_core.services import (
    AppealService,
    ContentFlagService,
    EventPublisher,
    ModerationMetrics,
    ModerationQueueService,
    RecordingDispatcher,
    ReportService,
)

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so wipe every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def metrics() -> ModerationMetrics:
    return ModerationMetrics()


@pytest.fixture()
def publisher(dispatcher: RecordingDispatcher, metrics: ModerationMetrics) -> EventPublisher:
    return EventPublisher(dispatcher, metrics)


@pytest.fixture()
def report_service(db_session: Session, publisher: EventPublisher) -> ReportService:
    return ReportService(db_session, publisher)


@pytest.fixture()
def flag_service(db_session: Session) -> ContentFlagService:
    return ContentFlagService(db_session)


@pytest.fixture()
def queue_service(db_session: Session, publisher: EventPublisher) -> ModerationQueueService:
    return ModerationQueueService(db_session, publisher)


@pytest.fixture()
def appeal_service(db_session: Session, publisher: EventPublisher) -> AppealService:
    return AppealService(db_session, publisher)


@pytest.fixture()
def test_settings() -> Settings:
    """Settings pointing the app at a throwaway in-memory database."""
    return Settings(DATABASE_URL=TEST_DB_URL, LOG_LEVEL="WARNING")


@pytest.fixture()
def app(test_settings: Settings, dispatcher: RecordingDispatcher, db_session: Session) -> Iterator[FastAPI]:
    application = create_app(test_settings, dispatcher=dispatcher)

    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    application.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield application
    finally:
        application.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_flag(flag_service: ContentFlagService):
    """Factory creating content flags with sensible defaults."""

    def _make(
        content_id: str = "c1",
        flag_type: ContentFlagType = ContentFlagType.SPAM,
        confidence: float = 0.9,
        **extra: Any,
    ) -> ContentFlag:
        return flag_service.create_content_flag(
            {
                "content_id": content_id,
                "content_type": extra.pop("content_type", ContentType.POST),
                "flag_type": flag_type,
                "confidence": confidence,
                **extra,
            }
        )

    return _make


@pytest.fixture()
def make_report(report_service: ReportService):
    """Factory creating reports against a reported user."""

    def _make(**overrides: Any) -> Report:
        data: dict[str, Any] = {
            "reporter_id": "reporter-1",
            "reported_user_id": "owner-1",
            "content_id": "c1",
            "content_type": ContentType.POST,
            "report_type": "HARASSMENT",
            "reason": "abusive replies",
        }
        data.update(overrides)
        return report_service.create_report(data)

    return _make
