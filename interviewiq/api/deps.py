from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from interviewiq.config import settings
from interviewiq.models.research import ResearchMode
from interviewiq.services import users

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class UserKeys:
    youtube_api_key: str = ""
    gemini_api_key: str = ""

    @property
    def mode(self) -> ResearchMode:
        """Pro when the user brings both of their own keys."""
        if self.youtube_api_key and self.gemini_api_key:
            return ResearchMode.PRO
        return ResearchMode.FREE


def get_available_models() -> list[dict[str, object]]:
    """Question-generation models, strongest first."""
    return [
        {"id": model, "rank": rank}
        for rank, model in enumerate(settings.question_model_list, start=1)
    ]


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return users.authenticate(credentials.credentials)
    except users.AuthenticationError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


async def get_user_keys(user_id: str = Depends(get_current_user)) -> UserKeys:
    keys = users.get_api_keys(user_id)
    return UserKeys(
        youtube_api_key=keys["youtubeApiKey"],
        gemini_api_key=keys["geminiApiKey"],
    )
