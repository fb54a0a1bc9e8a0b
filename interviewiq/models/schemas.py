from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# --- Requests ---


class ResearchGuestRequest(BaseModel):
    guestName: str = ""
    context: Optional[str] = None


class GenerateQuestionsRequest(BaseModel):
    interviewerName: str = ""
    interviewerStyle: Optional[str] = None
    channelDescription: Optional[str] = None
    guestName: str
    guestContext: Optional[str] = None
    pastInterviewsSummary: Optional[str] = None
    questionCount: int = Field(default=15, ge=1, le=100)


# --- Responses ---


class QuestionsResponse(BaseModel):
    success: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class ModelInfo(BaseModel):
    id: str
    rank: int


class ModelsResponse(BaseModel):
    models: list[ModelInfo]
