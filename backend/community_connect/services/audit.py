"""
Security event logging.

Usage:
    from community_connect.services.audit import security_event
    security_event("LOGIN_FAILED", {"email": email, "reason": "invalid_password"}, request)

Events are structured log entries, not control flow: a failure to log is
reported on the fallback logger and never interrupts the request.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Request

from community_connect.core.logging import get_logger
from community_connect.utils.request import get_client_ip

security_logger = get_logger("community_connect.security")
fallback_logger = logging.getLogger(__name__)


def security_event(
    event: str,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> None:
    """
    Record a security-relevant event.

    Args:
        event: Event name (e.g., "LOGIN_FAILED", "ACCOUNT_LOCKED")
        details: Additional context
        request: Originating request, for client IP and user agent
    """
    try:
        security_logger.warning(
            event,
            security_event=True,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=details or {},
            ip=get_client_ip(request) if request is not None else "unknown",
            user_agent=(request.headers.get("user-agent") or "unknown") if request is not None else "unknown",
        )
    except Exception as e:
        fallback_logger.warning(f"Failed to record security event {event}: {e}")
