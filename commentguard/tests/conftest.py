import os

os.environ["COMMENTGUARD_DATABASE_URL"] = "sqlite://"
os.environ["COMMENTGUARD_RETENTION_WORKER_ENABLED"] = "false"
os.environ["COMMENTGUARD_API_TOKEN"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from commentguard.database import Base, get_db
from commentguard.exceptions import UnsupportedProviderError
from commentguard.models.guard_settings import GuardSettings  # noqa: F401
from commentguard.models.moderation_log import ModerationLog  # noqa: F401
from commentguard.schemas.moderation_schemas import AnalysisResult, CommentData
from commentguard.services.ai_manager import PROVIDERS, build_prompt
from commentguard.services.cache_service import ProcessedComments
from commentguard.services.settings_service import SettingsService
from commentguard.utils.crypto import TokenCipher


class FakeAIManager:
    """
    Stands in for AIManager. Calling the instance acts as the factory, so it
    can be passed wherever a manager factory is expected.
    """

    def __init__(self, status="approved", confidence=0.9, reasoning="Looks fine", error=None, connected=True):
        self.status = status
        self.confidence = confidence
        self.reasoning = reasoning
        self.error = error
        self.connected = connected
        self.created_with = []
        self.analyzed = []
        self.provider_name = None

    def __call__(self, provider_name, token, model=None):
        if provider_name not in PROVIDERS:
            raise UnsupportedProviderError(f"Unsupported AI provider: {provider_name}")
        self.provider_name = provider_name
        self.created_with.append((provider_name, token, model))
        return self

    def analyze_comment(self, comment, system_message=""):
        self.analyzed.append((comment, system_message))
        if self.error:
            raise self.error
        return AnalysisResult(
            status=self.status,
            confidence=self.confidence,
            reasoning=self.reasoning,
            provider=self.provider_name,
            processing_time=0.25,
            prompt_used=build_prompt(comment),
            system_message=system_message,
            raw_response={"choices": [{"message": {"content": "{}"}}]},
        )

    def test_connection(self):
        if self.error:
            raise self.error
        return self.connected


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings_service():
    return SettingsService(cipher=TokenCipher("test-secret"))


@pytest.fixture
def configured_settings(test_db, settings_service):
    """Settings with a provider and token in place, logging on."""
    settings_service.update(test_db, {
        "ai_provider": "openai",
        "ai_provider_token": "sk-test-1234567890",
        "log_enabled": True,
    })
    return settings_service


@pytest.fixture
def markers():
    return ProcessedComments(max_size=100, ttl_seconds=300)


@pytest.fixture
def fake_ai():
    return FakeAIManager()


@pytest.fixture
def make_fake_ai():
    """Build a FakeAIManager with a scripted verdict or error."""
    return FakeAIManager


@pytest.fixture
def sample_comment():
    return CommentData(
        comment_author="Jane Reader",
        comment_author_email="jane@example.com",
        comment_author_url="https://jane.example.com",
        comment_content="Great write-up, the section on caching helped me a lot.",
        comment_author_IP="203.0.113.7",
    )


@pytest.fixture
def spam_comment():
    return CommentData(
        comment_author="Cheap Pills",
        comment_author_email="deals@spam.example",
        comment_author_url="http://buy-now.example",
        comment_content="BUY CHEAP PILLS NOW!!! http://buy-now.example",
    )


@pytest.fixture
def client(session_factory, settings_service, markers, fake_ai):
    """FastAPI test client wired to the in-memory database and fake AI."""
    from commentguard.api.dependencies import get_manager_factory, get_markers, get_settings_service
    from commentguard.api.security import rate_limiter
    from commentguard.api.server import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings_service] = lambda: settings_service
    app.dependency_overrides[get_markers] = lambda: markers
    app.dependency_overrides[get_manager_factory] = lambda: fake_ai
    rate_limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()
