"""Tests for the comment gate endpoints."""

import pytest

from commentguard.config import settings


def _configure(client, **extra):
    payload = {"ai_provider": "openai", "ai_provider_token": "sk-test-1234567890", "log_enabled": True}
    payload.update(extra)
    response = client.put("/admin/settings", json=payload)
    assert response.status_code == 200


def _moderate(client, comment, proposed_status="0", **extra):
    return client.post(
        "/comments/moderate",
        json={"proposed_status": proposed_status, "comment": comment, **extra},
    )


@pytest.fixture
def comment_payload():
    """Comment as the blog posts it (including its field casing)."""
    return {
        "comment_author": "Jane Reader",
        "comment_author_email": "jane@example.com",
        "comment_author_url": "",
        "comment_content": "Thanks, this fixed my deployment.",
        "comment_author_IP": "198.51.100.4",
        "comment_post_ID": 42,
        "comment_type": "comment",
    }


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_status(self, client):
        data = client.get("/status").json()
        assert data["status"] == "ok"
        assert data["providers"] == ["anthropic", "openai", "openrouter"]

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestModerateEndpoint:
    """Tests for /comments/moderate."""

    def test_unconfigured_returns_proposed(self, client, comment_payload, fake_ai):
        response = _moderate(client, comment_payload, proposed_status="1")

        assert response.status_code == 200
        assert response.json()["status"] == "1"
        assert response.json()["action"] is None
        assert fake_ai.analyzed == []

    def test_approval(self, client, comment_payload, fake_ai):
        _configure(client)
        response = _moderate(client, comment_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "1"
        assert data["action"] == "approve"
        assert data["analysis"]["provider"] == "openai"
        assert data["analysis"]["confidence"] == 0.9

        comment, _ = fake_ai.analyzed[0]
        assert comment.comment_author_ip == "198.51.100.4"
        assert comment.comment_post_id == 42

    def test_spam(self, client, comment_payload, fake_ai):
        _configure(client)
        fake_ai.status, fake_ai.confidence = "spam", 0.97
        assert _moderate(client, comment_payload).json()["status"] == "spam"

    def test_low_confidence_is_held(self, client, comment_payload, fake_ai):
        _configure(client)
        fake_ai.status, fake_ai.confidence = "spam", 0.69
        data = _moderate(client, comment_payload, proposed_status="1").json()
        assert data["status"] == "0"
        assert data["action"] == "hold"

    def test_moderator_bypass(self, client, comment_payload, fake_ai):
        _configure(client)
        fake_ai.status, fake_ai.confidence = "spam", 1.0
        data = _moderate(client, comment_payload, proposed_status="1", is_moderator=True).json()
        assert data["status"] == "1"

    def test_failure_is_fail_safe(self, client, comment_payload, fake_ai):
        from commentguard.exceptions import AnalysisError

        _configure(client)
        fake_ai.error = AnalysisError("AI analysis failed: HTTP 503")
        response = _moderate(client, comment_payload, proposed_status="0")

        assert response.status_code == 200
        assert response.json()["status"] == "0"

    def test_decision_logged(self, client, comment_payload):
        _configure(client)
        _moderate(client, comment_payload)

        logs = client.get("/admin/logs").json()
        assert logs["total"] == 1
        assert logs["logs"][0]["action"] == "approve"
        assert logs["logs"][0]["comment_author_ip"] == "198.51.100.4"

    def test_missing_content_rejected(self, client):
        response = _moderate(client, {"comment_author": "Nobody"})
        assert response.status_code == 422


class TestNotifyEndpoint:
    def test_notification_suppressed_after_moderation(self, client, comment_payload):
        _configure(client, disable_email_notifications=True)
        _moderate(client, comment_payload)

        response = client.post("/comments/notify", json={"notify": True, "comment": comment_payload})
        assert response.json() == {"notify": False}

    def test_notification_kept_for_other_comments(self, client, comment_payload):
        _configure(client, disable_email_notifications=True)
        _moderate(client, comment_payload)

        other = dict(comment_payload, comment_content="A different comment")
        response = client.post("/comments/notify", json={"notify": True, "comment": other})
        assert response.json() == {"notify": True}

    def test_notification_kept_when_setting_off(self, client, comment_payload):
        _configure(client)
        _moderate(client, comment_payload)

        response = client.post("/comments/notify", json={"notify": True, "comment": comment_payload})
        assert response.json() == {"notify": True}


class TestApiSecurity:
    def test_missing_api_key(self, client, comment_payload, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "gate-secret")

        response = _moderate(client, comment_payload)
        assert response.status_code == 401
        assert "Missing API key" in response.json()["detail"]

    def test_invalid_api_key(self, client, comment_payload, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "gate-secret")

        response = client.post(
            "/comments/moderate",
            json={"comment": comment_payload},
            headers={"X-API-Key": "wrong"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key."

    def test_valid_api_key(self, client, comment_payload, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "gate-secret")

        response = client.post(
            "/comments/moderate",
            json={"comment": comment_payload},
            headers={"X-API-Key": "gate-secret"},
        )
        assert response.status_code == 200

    def test_admin_requires_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "gate-secret")
        assert client.get("/admin/settings").status_code == 401

    def test_health_is_open(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "gate-secret")
        assert client.get("/health").status_code == 200

    def test_rate_limit(self, client, comment_payload, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)

        assert _moderate(client, comment_payload).status_code == 200
        assert _moderate(client, comment_payload).status_code == 200

        blocked = _moderate(client, comment_payload)
        assert blocked.status_code == 429
        assert "Retry-After" in blocked.headers
