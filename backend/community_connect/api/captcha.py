from typing import Annotated

from fastapi import APIRouter, Depends, Response

from community_connect.api.deps import get_captcha_engine
from community_connect.schemas.auth import CaptchaResponse
from community_connect.services.captcha import CaptchaEngine

router = APIRouter(prefix="/captcha", tags=["captcha"])


@router.get("", response_model=CaptchaResponse)
async def get_captcha(
    response: Response,
    engine: Annotated[CaptchaEngine, Depends(get_captcha_engine)],
):
    """Issue a new arithmetic challenge. The answer goes only into the http-only cookie."""
    challenge = engine.issue()
    engine.set_answer_cookie(response, challenge)
    return CaptchaResponse(question=challenge.question, token=challenge.token)
