"""
Email verification tokens.

Tokens are stored on the user record with a 24-hour expiry and consumed
exactly once.
"""

import hashlib
import logging
import time
from datetime import datetime, timedelta

from community_connect.core.config import Settings
from community_connect.db.base import as_utc, utcnow
from community_connect.services.credentials import CredentialStore

logger = logging.getLogger(__name__)


class VerificationTokenService:
    def __init__(self, settings: Settings, store: CredentialStore):
        self.settings = settings
        self.store = store

    def issue(self, email: str) -> tuple[str, datetime]:
        """
        Create a token for ``email``.

        Returns:
            (token, expires_at); the caller stores both on the user record
        """
        seed = f"{email}-{int(time.time() * 1000)}-{self.settings.JWT_SECRET_KEY}"
        token = hashlib.sha256(seed.encode("utf-8")).hexdigest()
        expires_at = utcnow() + timedelta(hours=self.settings.EMAIL_VERIFICATION_TTL_HOURS)
        return token, expires_at

    async def consume(self, email: str, token: str) -> bool:
        """
        Mark the account verified if ``token`` matches and has not expired.

        Returns False without touching the record on mismatch or expiry.
        """
        if not email or not token:
            return False

        user = await self.store.find_pending_verification(email, token)
        if user is None:
            return False

        expires_at = as_utc(user.email_verification_expires)
        if expires_at is None or expires_at <= utcnow():
            logger.info(f"Expired verification token presented for user {user.id}")
            return False

        return await self.store.mark_email_verified(user.id, token)
