"""
Integration tests for API endpoints
"""
import openai
import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from flashgen import config
from flashgen.db import get_session
from flashgen.main import app, on_startup

from fakes import flashcards_json


def _post(client, text, address="198.51.100.1"):
    return client.post("/generate", content=text.encode("utf-8"), headers={"X-Forwarded-For": address})


class TestHealthEndpoints:
    def test_health_check(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert data["checks"]["database"]["status"] == "healthy"

    def test_metrics_endpoint(self, client):
        """Test metrics endpoint"""
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "ai_generation_requests_total" in response.text


class TestStartup:
    def test_missing_api_key_fails_fast(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            on_startup()

    def test_require_api_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
        assert config.require_openai_api_key() == "sk-live"


class TestGenerateEndpoint:
    def test_fresh_client_gets_flashcards(self, client):
        response = _post(client, "binary search trees")

        assert response.status_code == 200
        cards = response.json()
        assert isinstance(cards, list)
        assert len(cards) == 10
        for card in cards:
            assert isinstance(card["front"], str) and card["front"]
            assert isinstance(card["back"], str) and card["back"]

    def test_raw_text_is_sent_as_user_message(self, client, fake_openai):
        _post(client, "Dijkstra's algorithm finds shortest paths.")
        messages = fake_openai.completions.calls[0]["messages"]
        assert messages[-1]["content"] == "Dijkstra's algorithm finds shortest paths."

    def test_sixth_request_in_a_minute_is_throttled(self, client, fake_openai):
        """Five calls reach generation whatever their outcome; the sixth is rejected"""
        fake_openai.completions.outcomes = [
            flashcards_json(), None, flashcards_json(), "not json", flashcards_json(),
        ]
        statuses = [_post(client, f"topic {i}").status_code for i in range(5)]
        assert statuses == [200, 500, 200, 500, 200]

        response = _post(client, "a brand new topic")
        assert response.status_code == 429
        assert response.json() == {"error": "Rate limit exceeded. Please try again later."}
        assert len(fake_openai.completions.calls) == 5

    def test_other_clients_unaffected_by_throttle(self, client):
        for i in range(5):
            _post(client, f"topic {i}", address="198.51.100.1")
        assert _post(client, "topic 0", address="198.51.100.1").status_code == 429
        assert _post(client, "topic 0", address="198.51.100.2").status_code == 200

    def test_duplicate_payload_rejected(self, client, fake_openai):
        assert _post(client, "red-black trees").status_code == 200

        response = _post(client, "red-black trees")
        assert response.status_code == 429
        assert response.json() == {
            "error": "Duplicate request. Please wait before submitting the same request again."
        }
        assert len(fake_openai.completions.calls) == 1

    def test_same_payload_from_another_client_is_not_duplicate(self, client):
        assert _post(client, "AVL rotations", address="192.0.2.10").status_code == 200
        assert _post(client, "AVL rotations", address="192.0.2.11").status_code == 200

    def test_missing_forwarded_header_shares_unknown_bucket(self, client):
        for i in range(5):
            assert client.post("/generate", content=f"tries {i}".encode()).status_code == 200
        assert client.post("/generate", content=b"tries again").status_code == 429
        assert _post(client, "tries again", address="192.0.2.50").status_code == 200

    def test_zero_choices_is_processing_error(self, client, fake_openai):
        fake_openai.completions.outcomes = [None]
        response = _post(client, "union find")
        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred while processing your request"}

    def test_wrong_card_count_is_processing_error(self, client, fake_openai):
        fake_openai.completions.outcomes = [flashcards_json(7)]
        response = _post(client, "segment trees")
        assert response.status_code == 500
        assert "7" not in response.json()["error"]

    def test_provider_failure_is_processing_error(self, client, fake_openai):
        fake_openai.completions.outcomes = [openai.OpenAIError("upstream exploded")]
        response = _post(client, "topological sort")
        assert response.status_code == 500
        assert "upstream" not in response.json()["error"]

    def test_unexpected_failure_is_processing_error(self, client, fake_openai):
        fake_openai.completions.outcomes = [ValueError("bug")]
        response = _post(client, "bit manipulation")
        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred while processing your request"}

    def test_blank_body_rejected_without_consuming_quota(self, client, rate_limiter):
        for _ in range(6):
            response = _post(client, "   \n")
            assert response.status_code == 400
            assert "error" in response.json()
        assert rate_limiter.tracked_clients() == 0
        assert _post(client, "sliding window").status_code == 200

    def test_non_utf8_body_rejected(self, client):
        response = client.post("/generate", content=b"\xff\xfe\xfa")
        assert response.status_code == 400

    def test_oversized_body_rejected(self, client, monkeypatch):
        monkeypatch.setattr(config, "MAX_INPUT_CHARS", 10)
        response = _post(client, "x" * 11)
        assert response.status_code == 413
        assert "10" in response.json()["error"]

    def test_get_not_allowed(self, client):
        assert client.get("/generate").status_code == 405


class TestThrottleOrdering:
    def _exhaust(self, client, address="198.51.100.9"):
        for i in range(5):
            assert _post(client, f"topic {i}", address=address).status_code == 200

    def test_blank_sixth_request_is_throttled(self, client):
        self._exhaust(client)
        response = _post(client, "   ", address="198.51.100.9")
        assert response.status_code == 429
        assert response.json() == {"error": "Rate limit exceeded. Please try again later."}

    def test_oversized_sixth_request_is_throttled(self, client, monkeypatch):
        self._exhaust(client)
        monkeypatch.setattr(config, "MAX_INPUT_CHARS", 10)
        assert _post(client, "y" * 50, address="198.51.100.9").status_code == 429

    def test_throttle_check_records_nothing(self, rate_limiter):
        for t in range(4):
            rate_limiter.admit("c", now=t)
        assert not rate_limiter.is_throttled("c", now=5)
        assert not rate_limiter.is_throttled("c", now=5)
        assert rate_limiter.admit("c", now=5)
        assert rate_limiter.is_throttled("c", now=6)
        assert not rate_limiter.is_throttled("c", now=61)
        assert not rate_limiter.is_throttled("never-seen", now=0)


class TestSweep:
    def test_expired_entries_pruned_past_threshold(self, client, rate_limiter, suppressor, monkeypatch):
        rate_limiter.admit("stale-client", now=-10_000)
        suppressor.is_duplicate("stale-client", "old text", now=-10_000)
        monkeypatch.setattr(config, "SWEEP_THRESHOLD", 1)

        assert _post(client, "fresh text").status_code == 200

        assert rate_limiter.tracked_clients() == 1
        assert suppressor.tracked_keys() == 1

    def test_no_sweep_below_threshold(self, client, rate_limiter, suppressor):
        rate_limiter.admit("stale-client", now=-10_000)
        suppressor.is_duplicate("stale-client", "old text", now=-10_000)

        _post(client, "fresh text")

        assert rate_limiter.tracked_clients() == 2
        assert suppressor.tracked_keys() == 2


class TestRequestLogging:
    def test_unhandled_error_is_logged_as_failed(self, client):
        def broken_session():
            raise RuntimeError("database unavailable")
            yield  # pragma: no cover

        app.dependency_overrides[get_session] = broken_session
        raw_client = TestClient(app, raise_server_exceptions=False)
        with capture_logs() as logs:
            response = raw_client.get("/users/someone/sets")

        assert response.status_code == 500
        failed = [e for e in logs if e["event"] == "api_request_failed"]
        assert len(failed) == 1
        assert failed[0]["error_type"] == "RuntimeError"
        assert failed[0]["path"] == "/users/someone/sets"

    def test_completed_request_logged_with_status(self, client):
        with capture_logs() as logs:
            client.get("/health")
        events = [e["event"] for e in logs if e.get("path") == "/health"]
        assert events == ["api_request_started", "api_request_completed"]
        completed = next(e for e in logs if e["event"] == "api_request_completed")
        assert completed["status_code"] == 200
