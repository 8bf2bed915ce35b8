"""
Shared fixtures. The environment is set before the app is imported so the
module-level configuration picks it up.
"""
import os
import tempfile

os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(), "flashgen-test.db")

import pytest
from fastapi.testclient import TestClient

from flashgen.main import app
from flashgen.middleware.dedupe import DuplicateSuppressor, get_duplicate_suppressor
from flashgen.middleware.rate_limit import SlidingWindowRateLimiter, get_rate_limiter, limiter
from flashgen.services.llm import FlashcardGenerator, get_generator

from fakes import FakeOpenAI


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def rate_limiter():
    return SlidingWindowRateLimiter(max_requests=5, window_seconds=60)


@pytest.fixture
def suppressor():
    return DuplicateSuppressor(window_seconds=60)


@pytest.fixture
def client(fake_openai, rate_limiter, suppressor):
    app.dependency_overrides[get_generator] = lambda: FlashcardGenerator(client=fake_openai, card_count=10)
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_duplicate_suppressor] = lambda: suppressor
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
