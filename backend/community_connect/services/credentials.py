"""
Credential store adapter.

The security flows only touch the user record through this class: lookups by
email or id, inserts, and field updates that can set and clear columns in a
single statement.
"""

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from community_connect.db.base import utcnow
from community_connect.models.user import User


class CredentialStore:
    """Reads and writes UserCredentialRecords through an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def insert(self, user: User) -> uuid.UUID:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user.id

    async def update_fields(
        self,
        user_id: uuid.UUID,
        set_fields: Mapping[str, Any],
        unset_fields: Iterable[str] = (),
    ) -> None:
        """
        Set and clear columns on one user in a single UPDATE.

        Args:
            user_id: User to update
            set_fields: Column name to new value
            unset_fields: Column names reset to NULL
        """
        values: dict[str, Any] = dict(set_fields)
        for field in unset_fields:
            values[field] = None
        values["updated_at"] = utcnow()

        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

    async def find_pending_verification(self, email: str, token: str) -> User | None:
        """Find the user holding this verification token, expired or not."""
        result = await self.db.execute(
            select(User).where(
                User.email == email.lower(),
                User.email_verification_token == token,
            )
        )
        return result.scalar_one_or_none()

    async def mark_email_verified(self, user_id: uuid.UUID, token: str) -> bool:
        """
        Verify the account and clear token and expiry together.

        The token is part of the WHERE clause, so only one of two concurrent
        consumers of the same token sees a matched row.

        Returns:
            True if this call performed the verification
        """
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.email_verification_token == token)
            .values(
                is_email_verified=True,
                email_verification_token=None,
                email_verification_expires=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount == 1
