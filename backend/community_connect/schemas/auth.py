from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case names also accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    # Presence is checked by the handler so the error message stays uniform
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    captcha_answer: int | None = None
    # Client-side correlation id; not used for verification
    captcha_token: str | None = None


class RegisterResponse(CamelModel):
    message: str
    email_sent: bool
    user_id: str
    # Same value as the csrf-token cookie, which script cannot read
    csrf_token: str


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None
    captcha_answer: int | None = None


class VerifyEmailRequest(CamelModel):
    email: str | None = None
    token: str | None = None


class MessageResponse(BaseModel):
    message: str


class CaptchaResponse(BaseModel):
    question: str
    token: str
