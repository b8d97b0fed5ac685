from community_connect.schemas.auth import (
    CaptchaResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyEmailRequest,
)
from community_connect.schemas.user import LoginResponse, ProfileUpdate, UserEnvelope, UserProfile

__all__ = [
    "CaptchaResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "RegisterResponse",
    "VerifyEmailRequest",
    "LoginResponse",
    "ProfileUpdate",
    "UserEnvelope",
    "UserProfile",
]
