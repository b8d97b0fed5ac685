"""Tests for security event logging."""

from unittest.mock import MagicMock

from starlette.requests import Request

from community_connect.services import audit
from community_connect.services.audit import security_event


def _request() -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "path": "/api/auth/login",
        "headers": [(b"user-agent", b"pytest-agent"), (b"x-forwarded-for", b"203.0.113.9")],
        "client": ("10.0.0.1", 4000),
    })


def test_event_carries_context(monkeypatch):
    logger = MagicMock()
    monkeypatch.setattr(audit, "security_logger", logger)

    security_event("LOGIN_FAILED", {"reason": "invalid_password"}, _request())

    args, kwargs = logger.warning.call_args
    assert args == ("LOGIN_FAILED",)
    assert kwargs["security_event"] is True
    assert kwargs["details"] == {"reason": "invalid_password"}
    assert kwargs["ip"] == "203.0.113.9"
    assert kwargs["user_agent"] == "pytest-agent"
    assert "timestamp" in kwargs


def test_event_without_request(monkeypatch):
    logger = MagicMock()
    monkeypatch.setattr(audit, "security_logger", logger)

    security_event("LOGOUT")

    kwargs = logger.warning.call_args[1]
    assert kwargs["ip"] == "unknown"
    assert kwargs["details"] == {}


def test_logging_failure_never_raises(monkeypatch):
    logger = MagicMock()
    logger.warning.side_effect = RuntimeError("sink unavailable")
    monkeypatch.setattr(audit, "security_logger", logger)

    security_event("ACCOUNT_LOCKED", {"attempts": 5}, _request())
