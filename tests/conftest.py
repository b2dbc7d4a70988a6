"""
Pytest configuration for Mindweave tests

Every test gets its own SQLite database and uploads directory, an empty rate
limit store and telemetry, and the LLM switched off. Tests that need AI output
request the `fake_llm` fixture, which answers prompts from a canned table and
embeds text as a bag of hashed words so similar texts land close together.
"""

from __future__ import annotations

import re
import zlib
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from mindweave import config
from mindweave.ai import embeddings, generation
from mindweave.api.middleware.user_auth import (
    AuthenticatedUser,
    clear_token_cache,
    get_current_user,
)
from mindweave.content.models import ContentCreate, ContentItem
from mindweave.content.repository import ContentRepository
from mindweave.digest.delivery import set_delivery
from mindweave.infrastructure.database import init_database, reset_pool
from mindweave.infrastructure.rate_limit import reset_rate_limit_store
from mindweave.observability.telemetry import reset_telemetry
from mindweave.users.repository import User, UserRepository

LLM_ENV_VARS = ("GOOGLE_API_KEY", "GOOGLE_AI_API_KEY", "GOOGLE_CLOUD_PROJECT")


@pytest.fixture(autouse=True)
def isolated_database(tmp_path, monkeypatch):
    """Fresh database, uploads dir and in-memory state for each test"""
    monkeypatch.setenv("MINDWEAVE_DB_PATH", str(tmp_path / "mindweave-test.db"))
    for var in (*LLM_ENV_VARS, "CRON_SECRET"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "UPLOADS_DIR", tmp_path / "uploads")

    reset_pool()
    init_database()
    reset_rate_limit_store()
    clear_token_cache()
    reset_telemetry()
    set_delivery(None)

    yield

    reset_pool()
    set_delivery(None)


# ============================================================================
# Users and content
# ============================================================================


@pytest.fixture
def user() -> User:
    return UserRepository.upsert("user-1", "ada@example.com", "Ada")


@pytest.fixture
def other_user() -> User:
    return UserRepository.upsert("user-2", "grace@example.com", "Grace")


@pytest.fixture
def make_content():
    """Factory that inserts a content row directly through the repository"""

    def _make(
        user_id: str,
        title: str,
        content_type: str = "note",
        body: str | None = None,
        url: str | None = None,
        tags: list[str] | None = None,
        auto_tags: list[str] | None = None,
        created_at: datetime | None = None,
    ) -> ContentItem:
        return ContentRepository.create(
            ContentCreate(
                user_id=user_id,
                type=content_type,
                title=title,
                body=body,
                url=url,
                tags=tags or [],
                auto_tags=auto_tags or [],
                created_at=created_at,
            )
        )

    return _make


# ============================================================================
# LLM
# ============================================================================


def fake_embedding(text: str, task_type: str = "RETRIEVAL_DOCUMENT") -> list[float]:  # noqa: ARG001
    """768-dim bag of hashed words"""
    vector = [0.0] * config.EMBEDDING_DIMENSIONS
    for word in re.findall(r"[a-z]+", text.lower()):
        vector[zlib.crc32(word.encode()) % config.EMBEDDING_DIMENSIONS] += 1.0
    return vector


class FakeLLM:
    """Stands in for call_llm; replies are keyed by counter_prefix"""

    def __init__(self):
        self.responses: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def __call__(
        self,
        prompt: str,
        counter_prefix: str = "llm",
        max_output_tokens: int | None = None,  # noqa: ARG002
        temperature: float | None = None,  # noqa: ARG002
        json_response: bool = False,  # noqa: ARG002
    ) -> str:
        self.calls.append((counter_prefix, prompt))
        return self.responses.get(counter_prefix, "")

    def prompts(self, counter_prefix: str) -> list[str]:
        return [prompt for prefix, prompt in self.calls if prefix == counter_prefix]


@pytest.fixture
def store_vector():
    """Store an embedding whose leading components are given, the rest zero"""

    def _store(content_id: str, *components: float) -> list[float]:
        vector = [0.0] * config.EMBEDDING_DIMENSIONS
        vector[: len(components)] = components
        embeddings._store_embedding(content_id, vector)
        return vector

    return _store


@pytest.fixture
def fake_llm(monkeypatch) -> FakeLLM:
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    llm = FakeLLM()
    monkeypatch.setattr(generation, "call_llm", llm)
    monkeypatch.setattr(embeddings, "embed_text", fake_embedding)
    return llm


# ============================================================================
# Email
# ============================================================================


class RecordingDelivery:
    """Collects digest emails instead of sending them"""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.sent: list[tuple[str, str, str]] = []

    def send_html(self, to_email: str, subject: str, html: str) -> bool:
        self.sent.append((to_email, subject, html))
        return self.accept


@pytest.fixture
def outbox() -> RecordingDelivery:
    delivery = RecordingDelivery()
    set_delivery(delivery)
    return delivery


# ============================================================================
# API
# ============================================================================


@pytest.fixture
def app():
    # Imported lazily: importing the app initializes the database
    from mindweave.api.app import app as mindweave_app

    yield mindweave_app
    mindweave_app.dependency_overrides.clear()


@pytest.fixture
def anon_client(app) -> TestClient:
    """Client with real authentication (API keys, public routes)"""
    return TestClient(app)


@pytest.fixture
def client(app, user) -> TestClient:
    """Client signed in as `user` without calling Google"""
    signed_in = AuthenticatedUser(id=user.id, email=user.email, name=user.name)

    async def current_user() -> AuthenticatedUser:
        return signed_in

    app.dependency_overrides[get_current_user] = current_user
    return TestClient(app)
