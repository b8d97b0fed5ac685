from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from community_connect.db.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Credential record plus the profile fields shown after login."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    first_name: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    avatar: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    community_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Email verification; token and expiry are always cleared together
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verification_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    email_verification_expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Lockout
    login_attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lock_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
