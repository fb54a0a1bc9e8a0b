from __future__ import annotations

import json as _json

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from interviewiq.agents.orchestrator import ResearchOrchestrator
from interviewiq.api.deps import UserKeys, get_user_keys
from interviewiq.models.research import ResearchRequest
from interviewiq.models.schemas import ResearchGuestRequest
from interviewiq.services import logger as log_service
from interviewiq.services import streaming

router = APIRouter(prefix="/api", tags=["research"])


@router.post("/research-guest")
async def research_guest(
    request: ResearchGuestRequest,
    keys: UserKeys = Depends(get_user_keys),
):
    """SSE endpoint that streams research progress and the final report."""
    guest_name = request.guestName.strip()
    if not guest_name:
        raise HTTPException(status_code=400, detail="Guest name is required")

    research_request = ResearchRequest(
        subject_name=guest_name,
        context=(request.context or "").strip(),
        mode=keys.mode,
        search_api_key=keys.youtube_api_key or None,
        llm_api_key=keys.gemini_api_key or None,
    )

    async def event_generator():
        orchestrator = ResearchOrchestrator()
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            run_id=orchestrator.run_id,
            guest=guest_name[:100],
            mode=research_request.mode.value,
            custom_youtube_key=bool(keys.youtube_api_key),
            custom_gemini_key=bool(keys.gemini_api_key),
        )
        try:
            async for event in orchestrator.research(research_request):
                yield {"data": _json.dumps(event.payload())}
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                run_id=orchestrator.run_id,
            )
            error_event = streaming.error("Research stream failed unexpectedly.")
            yield {"data": _json.dumps(error_event.payload())}

    return EventSourceResponse(event_generator())
