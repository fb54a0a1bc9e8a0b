from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from interviewiq import llm_client
from interviewiq.config import settings
from interviewiq.errors import InterviewIQError, RateLimited
from interviewiq.models.schemas import GenerateQuestionsRequest, QuestionsResponse
from interviewiq.services.prompt_store import render_prompt

DEFAULT_INTERVIEWER_STYLE = "Conversational, curious, goes deep"
DEFAULT_CHANNEL_DESCRIPTION = "Not specified"
NO_RESEARCH_TEXT = "No specific research data available. Use your knowledge to generate unique questions."
TRUNCATION_MARKER = "\n... (truncated)"


def trim_research(text: str | None) -> str:
    research = text or ""
    budget = settings.question_research_char_budget
    if len(research) > budget:
        research = research[:budget] + TRUNCATION_MARKER
    return research


def build_user_prompt(request: GenerateQuestionsRequest) -> str:
    guest_name = request.guestName
    return render_prompt(
        "questions.user",
        interviewer_name=request.interviewerName,
        interviewer_style=request.interviewerStyle or DEFAULT_INTERVIEWER_STYLE,
        channel_description=request.channelDescription or DEFAULT_CHANNEL_DESCRIPTION,
        guest_name=guest_name,
        guest_name_upper=guest_name.upper(),
        focus_line=(
            f"Interviewer's Focus/Angle: {request.guestContext}" if request.guestContext else ""
        ),
        research=trim_research(request.pastInterviewsSummary) or NO_RESEARCH_TEXT,
        question_count=request.questionCount,
    )


def failure_message(last_error: Exception | None) -> str:
    detail = str(last_error) if last_error else "Unknown error"
    return (
        f"All models failed. Last error: {detail}. Gemini API quota may be exhausted: "
        "resets in ~1 minute for RPM limits, or at midnight PT for daily limits. "
        "You can add your own API key in Settings."
    )


class QuestionGenerator:
    """Single-shot question generation over an ordered model ladder.

    Each model gets a fixed number of tries. A rate-limited try waits out the
    cooldown before the next one; any other failure moves on immediately. The
    first response that parses as a JSON object wins.
    """

    name = "question_generator"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        models: list[str] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.models = models or settings.question_model_list
        self._sleep = sleep

    async def generate(self, request: GenerateQuestionsRequest) -> QuestionsResponse:
        llm_client.resolve_api_key(self.api_key)
        system_prompt = render_prompt("questions.system")
        user_prompt = build_user_prompt(request)
        attempts_per_model = max(settings.question_attempts_per_model, 1)
        ladder = [(model, attempt) for model in self.models for attempt in range(attempts_per_model)]

        last_error: Exception | None = None
        for position, (model, attempt) in enumerate(ladder):
            logger.info(f"Questions: trying {model} (attempt {attempt + 1})")
            try:
                generation = await llm_client.generate(
                    "questions",
                    user_prompt,
                    api_key=self.api_key,
                    model=model,
                    system_instruction=system_prompt,
                    caller=self.name,
                )
                parsed = llm_client.parse_json_object(generation.text)
            except InterviewIQError as e:
                last_error = e
                logger.warning(f"Questions: {model} attempt {attempt + 1} failed: {str(e)[:120]}")
                if isinstance(e, RateLimited) and position < len(ladder) - 1:
                    cooldown = settings.question_rate_limit_cooldown_seconds
                    logger.info(f"Questions: rate limited, waiting {cooldown:.0f}s")
                    await self._sleep(cooldown)
                continue

            logger.info(f"Questions: success with {model}")
            return QuestionsResponse(success=True, data=parsed)

        return QuestionsResponse(success=False, error=failure_message(last_error))
