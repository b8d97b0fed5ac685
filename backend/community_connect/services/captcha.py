"""
Arithmetic CAPTCHA challenges.

The expected answer never appears in a response body. It travels only in the
http-only ``captcha-answer`` cookie, which the login and registration
handlers clear after every verification attempt.
"""

import hashlib
import random
import time
from dataclasses import dataclass

from fastapi import Response

from community_connect.core.config import Settings

CAPTCHA_COOKIE_NAME = "captcha-answer"

OPERAND_MAX = 20
MULTIPLY_OPERAND_MAX = 10
OPERATIONS = ("+", "-", "*")


@dataclass(frozen=True)
class CaptchaChallenge:
    question: str
    answer: int
    # Correlation id for the client; not used for verification
    token: str


class CaptchaEngine:
    """Issues and checks arithmetic challenges."""

    def __init__(self, settings: Settings, rng: random.Random | None = None):
        self.settings = settings
        self.rng = rng or random.SystemRandom()

    def _operand(self, upper: int) -> int:
        return self.rng.randint(1, upper)

    def issue(self) -> CaptchaChallenge:
        operation = self.rng.choice(OPERATIONS)

        if operation == "*":
            # Smaller operands keep products presentable
            left, right = self._operand(MULTIPLY_OPERAND_MAX), self._operand(MULTIPLY_OPERAND_MAX)
            answer = left * right
            question = f"{left} × {right}"
        elif operation == "-":
            first, second = self._operand(OPERAND_MAX), self._operand(OPERAND_MAX)
            left, right = max(first, second), min(first, second)
            answer = left - right
            question = f"{left} - {right}"
        else:
            left, right = self._operand(OPERAND_MAX), self._operand(OPERAND_MAX)
            answer = left + right
            question = f"{left} + {right}"

        seed = f"{answer}-{int(time.time() * 1000)}-{self.settings.JWT_SECRET_KEY}"
        token = hashlib.sha256(seed.encode("utf-8")).hexdigest()

        return CaptchaChallenge(question=question, answer=answer, token=token)

    @staticmethod
    def verify(submitted: int | None, cookie_answer: str | None) -> bool:
        """
        Compare a submitted answer with the cookie-held one.

        A missing cookie means no challenge was fetched, which always fails.
        """
        if cookie_answer is None or submitted is None:
            return False
        try:
            expected = int(cookie_answer.strip())
        except ValueError:
            return False
        return expected == submitted

    def set_answer_cookie(self, response: Response, challenge: CaptchaChallenge) -> None:
        response.set_cookie(
            key=CAPTCHA_COOKIE_NAME,
            value=str(challenge.answer),
            max_age=self.settings.CAPTCHA_TTL_SECONDS,
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict",
            path="/",
        )


def clear_captcha_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        CAPTCHA_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
