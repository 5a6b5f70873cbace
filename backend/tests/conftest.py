"""
Shared pytest fixtures for the refresh service tests.

Test categories:
    - Unit tests: fakes for job endpoints and storage, no database
    - Integration tests: in-memory SQLite database and the ASGI app

Database:
    Tests use an in-memory SQLite database shared through a StaticPool,
    so no database server is needed.
"""

import base64
import os
from collections.abc import Generator
from pathlib import Path

import pytest
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# =============================================================================
# Environment Setup
# =============================================================================

load_dotenv()

# Override settings BEFORE importing sermon_audio modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6380/0")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("STORAGE_TYPE", "local")
os.environ.setdefault("CLEANING_JOB_RESULTS_ENDPOINT", "http://jobs.test/cleaning-results")
os.environ.setdefault("TRANSCRIPTION_JOB_RESULTS_ENDPOINT", "http://jobs.test/transcription-results")
os.environ.setdefault("ANNOUNCEMENT_TOKEN", "test-announcement-token")
os.environ.setdefault("EVENTS_REDIS_ENABLED", "false")

from sermon_audio.config import Settings, get_settings  # noqa: E402
from sermon_audio.core.database.base import Base  # noqa: E402
from sermon_audio.core.database.session import get_db  # noqa: E402
from sermon_audio.core.events.bus import EventBus, get_event_bus  # noqa: E402
from sermon_audio.core.events.types import Event  # noqa: E402
from sermon_audio.core.jobs.client import JobStatus, JobStatusClient, NotFinished  # noqa: E402
from sermon_audio.core.jobs.kinds import JobKind  # noqa: E402
from sermon_audio.core.records.models import SermonAudio, SermonAudioTranslation  # noqa: E402
from sermon_audio.core.storage.base import ResultStorage, TranscriptFetcher, content_key  # noqa: E402
from sermon_audio.core.exceptions import TranscriptNotFoundError  # noqa: E402
from sermon_audio.refresh.coordinator import ReconciliationCoordinator  # noqa: E402
from sermon_audio.refresh.engine import RefreshEngine  # noqa: E402
from sermon_audio.refresh.guard import DuplicateInvocationGuard  # noqa: E402
from sermon_audio.refresh.notifications import NotificationDispatcher  # noqa: E402
from sermon_audio.transcripts.generator import FinalTranscriptionGenerator  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# =============================================================================
# Fakes
# =============================================================================


class FakeJobStatusClient(JobStatusClient):
    """Job status source driven by the test; unknown jobs are still pending."""

    def __init__(self) -> None:
        self.statuses: dict[str, JobStatus | Exception] = {}
        self.calls: list[str] = []

    def set_status(self, job_id: str, status: JobStatus | Exception) -> None:
        self.statuses[job_id] = status

    def query_status(self, job_id: str) -> JobStatus:
        self.calls.append(job_id)
        status = self.statuses.get(job_id, NotFinished())
        if isinstance(status, Exception):
            raise status
        return status


class InMemoryTranscriptStorage(TranscriptFetcher, ResultStorage):
    """Dict-backed storage for raw transcripts and rendered HTML."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fetch_errors: dict[str, Exception] = {}

    def put(self, key: str, payload: str | bytes) -> None:
        self.objects[key] = payload.encode("utf-8") if isinstance(payload, str) else payload

    def fetch(self, key: str) -> bytes:
        if key in self.fetch_errors:
            raise self.fetch_errors[key]
        if key not in self.objects:
            raise TranscriptNotFoundError(f"{key} not found")
        return self.objects[key]

    def store(self, content: str) -> str:
        data = content.encode("utf-8")
        key = content_key("final-transcriptions/", data)
        self.objects[key] = data
        return key


def build_translation(langcode: str = "en", **fields) -> SermonAudioTranslation:
    """Translation with raw audio and no jobs unless overridden."""
    values = {
        "unprocessed_audio_ref": f"audio/raw/sermon-{langcode}.mp3",
        "cleaning_job_failed": False,
        "transcription_job_failed": False,
    }
    values.update(fields)
    return SermonAudioTranslation(langcode=langcode, **values)


def build_record(*translations: SermonAudioTranslation, record_id: int | None = None) -> SermonAudio:
    record = SermonAudio(translations=list(translations))
    if record_id is not None:
        record.id = record_id
    return record


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings instance isolated from the environment's storage path."""
    return Settings(
        storage_type="local",
        storage_local_path=str(tmp_path / "storage"),
        cleaning_job_results_endpoint="http://jobs.test/cleaning-results",
        transcription_job_results_endpoint="http://jobs.test/transcription-results",
        announcement_token="test-announcement-token",
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, class_=Session, expire_on_commit=False, autoflush=False)


@pytest.fixture
def db_session(db_session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Refresh Fixtures
# =============================================================================


@pytest.fixture
def cleaning_client() -> FakeJobStatusClient:
    return FakeJobStatusClient()


@pytest.fixture
def transcription_client() -> FakeJobStatusClient:
    return FakeJobStatusClient()


@pytest.fixture
def transcript_storage() -> InMemoryTranscriptStorage:
    return InMemoryTranscriptStorage()


@pytest.fixture
def refresh_engine(
    cleaning_client: FakeJobStatusClient,
    transcription_client: FakeJobStatusClient,
    transcript_storage: InMemoryTranscriptStorage,
) -> RefreshEngine:
    return RefreshEngine(
        clients={
            JobKind.CLEANING: cleaning_client,
            JobKind.TRANSCRIPTION: transcription_client,
        },
        transcription_generator=FinalTranscriptionGenerator(transcript_storage),
        result_storage=transcript_storage,
    )


@pytest.fixture
def guard() -> DuplicateInvocationGuard:
    return DuplicateInvocationGuard()


@pytest.fixture
def coordinator(refresh_engine: RefreshEngine, guard: DuplicateInvocationGuard) -> ReconciliationCoordinator:
    return ReconciliationCoordinator(refresh_engine, guard)


@pytest.fixture
def event_bus() -> Generator[EventBus, None, None]:
    """The singleton bus, emptied before and after each test."""
    bus = get_event_bus()
    bus.clear()
    yield bus
    bus.clear()


@pytest.fixture
def published_events(event_bus: EventBus) -> list[Event]:
    """Every event published on the bus during the test."""
    events: list[Event] = []
    event_bus.subscribe_all(events.append)
    return events


@pytest.fixture
def dispatcher(event_bus: EventBus) -> NotificationDispatcher:
    return NotificationDispatcher(event_bus)


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(test_settings: Settings, db_session: Session) -> Generator[FastAPI, None, None]:
    """Application wired to the test database session and settings."""
    from sermon_audio.main import create_app

    app_instance = create_app()

    def override_get_db():
        yield db_session

    app_instance.dependency_overrides[get_db] = override_get_db
    app_instance.dependency_overrides[get_settings] = lambda: test_settings
    yield app_instance
    app_instance.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create synchronous test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def announcement_headers() -> dict[str, str]:
    token = base64.b64encode(b"test-announcement-token").decode("ascii")
    return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}


@pytest.fixture
def normal_transcription_xml() -> str:
    """Real lecture transcript with natural pauses."""
    return (FIXTURES_DIR / "normal_transcription.xml").read_text(encoding="utf-8")
