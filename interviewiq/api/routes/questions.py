from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from interviewiq.agents.question_generator import QuestionGenerator
from interviewiq.api.deps import UserKeys, get_user_keys
from interviewiq.errors import ConfigurationError
from interviewiq.models.schemas import GenerateQuestionsRequest, QuestionsResponse
from interviewiq.services import logger as log_service

router = APIRouter(prefix="/api", tags=["questions"])


@router.post("/generate-questions", response_model=QuestionsResponse)
async def generate_questions(
    request: GenerateQuestionsRequest,
    keys: UserKeys = Depends(get_user_keys),
):
    """Generate interview questions from a research narrative."""
    generator = QuestionGenerator(api_key=keys.gemini_api_key or None)
    try:
        result = await generator.generate(request)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    log_service.log_event(
        event_type="questions_generated" if result.success else "questions_failed",
        message=f"Question generation for {request.guestName[:100]}",
        success=result.success,
    )
    return result
