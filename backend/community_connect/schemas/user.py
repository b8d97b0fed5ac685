from datetime import datetime

from community_connect.models.user import User
from community_connect.schemas.auth import CamelModel


class UserProfile(CamelModel):
    id: str  # UUID as string for JSON serialization
    first_name: str
    last_name: str
    email: str
    avatar: str | None = None
    bio: str = ""
    location: str = ""
    phone: str = ""
    community_score: int = 0
    joined_at: datetime
    is_email_verified: bool

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=str(user.id),
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            avatar=user.avatar,
            bio=user.bio or "",
            location=user.location or "",
            phone=user.phone or "",
            community_score=user.community_score or 0,
            joined_at=user.created_at,
            is_email_verified=user.is_email_verified,
        )


class UserEnvelope(CamelModel):
    user: UserProfile


class ProfileUpdate(CamelModel):
    """Editable profile fields. Anything else in the body is ignored."""

    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    location: str | None = None
    phone: str | None = None


class LoginResponse(UserEnvelope):
    # Echoed back in the x-csrf-token header on mutating requests
    csrf_token: str
