from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from google.genai import types
from loguru import logger

from interviewiq import llm_client
from interviewiq.config import settings
from interviewiq.errors import RateLimited, TransientProviderError
from interviewiq.models.events import SSEEvent, Stage
from interviewiq.models.policy import ModePolicy
from interviewiq.models.research import SourceKind, TranscriptRecord, VideoRecord
from interviewiq.services import streaming
from interviewiq.services.prompt_store import render_prompt

MODEL_WATCHED_LANGUAGE = "model-analyzed"


@dataclass
class ModelWatchOutcome:
    analyzed: list[TranscriptRecord] = field(default_factory=list)
    attempted: int = 0
    skipped: int = 0
    circuit_open: bool = False


def _video_contents(video: VideoRecord) -> types.Content:
    prompt = render_prompt(
        "video_watch.prompt",
        video_url=video.url,
        title=video.title,
        channel=video.channel_name,
    )
    return types.Content(
        role="user",
        parts=[
            types.Part(file_data=types.FileData(file_uri=video.url)),
            types.Part(text=prompt),
        ],
    )


async def analyze_video(video: VideoRecord, api_key: str | None = None) -> TranscriptRecord | None:
    """Ask the model to watch one video. Any failure yields None."""
    try:
        generation = await asyncio.wait_for(
            llm_client.generate(
                "video_watch",
                _video_contents(video),
                api_key=api_key,
                caller="video_analyzer",
            ),
            timeout=settings.model_watch_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            f"Video analysis timed out after {settings.model_watch_timeout_seconds:.0f}s: {video.id}"
        )
        return None
    except RateLimited:
        logger.warning(f"Gemini quota hit while analyzing {video.id}")
        return None
    except TransientProviderError as e:
        logger.warning(f"Video analysis failed for {video.id}: {str(e)[:80]}")
        return None

    if len(generation.text) <= settings.model_watch_min_chars:
        return None
    return TranscriptRecord(
        video_id=video.id,
        title=video.title,
        channel_name=video.channel_name,
        text=generation.text,
        language=MODEL_WATCHED_LANGUAGE,
        source_kind=SourceKind.MODEL_WATCHED,
    )


def _watching_message(policy: ModePolicy, start: int, size: int, total: int, skipped: int) -> str:
    if policy.model_watch_batch_size > 1:
        return f"AI watching videos {start + 1}-{min(start + size, total)} of {total} (Pro mode)..."
    suffix = f" ({skipped} skipped)" if skipped else ""
    return f"AI watching video {start + 1} of {total}{suffix}..."


def _circuit_message(policy: ModePolicy, outcome: ModelWatchOutcome, start: int, total: int) -> str:
    if policy.is_pro:
        return (
            f"Gemini API quota likely exhausted after {start} videos. "
            f"{len(outcome.analyzed)} analyzed. Enable billing for unlimited usage."
        )
    return (
        f"Gemini API quota likely exhausted. {len(outcome.analyzed)} of {total} videos "
        "analyzed. Add your own API key for unlimited usage."
    )


async def analyze_videos(
    videos: list[VideoRecord],
    *,
    policy: ModePolicy,
    api_key: str | None,
    on_progress: Callable[[SSEEvent], None],
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ModelWatchOutcome:
    """Analyze videos in policy-sized batches with a consecutive-failure breaker.

    A batch resets the failure counter if any member succeeded; a fully failed
    batch adds its size. The breaker is checked before each new batch.
    """
    cap = policy.model_watch_cap
    to_analyze = videos if cap is None else videos[:cap]
    outcome = ModelWatchOutcome(skipped=len(videos) - len(to_analyze))
    if outcome.skipped:
        logger.info(f"Model watch capped at {cap} videos (skipping {outcome.skipped})")

    total = len(to_analyze)
    batch_size = max(policy.model_watch_batch_size, 1)
    consecutive_failures = 0

    for start in range(0, total, batch_size):
        if consecutive_failures >= policy.model_watch_failure_threshold:
            logger.warning(f"Model watch: {consecutive_failures} consecutive failures, stopping")
            outcome.circuit_open = True
            on_progress(
                streaming.failed(Stage.MODEL_WATCH, _circuit_message(policy, outcome, start, total))
            )
            break

        batch = to_analyze[start : start + batch_size]
        on_progress(
            streaming.active(
                Stage.MODEL_WATCH,
                _watching_message(policy, start, len(batch), total, outcome.skipped),
            )
        )
        results = await asyncio.gather(*(analyze_video(video, api_key) for video in batch))
        outcome.attempted += len(batch)

        succeeded = [record for record in results if record is not None]
        outcome.analyzed.extend(succeeded)
        if succeeded:
            consecutive_failures = 0
        else:
            consecutive_failures += len(batch)

        if start + batch_size < total:
            await sleep(policy.model_watch_delay_seconds)

    logger.info(f"Model watch: {len(outcome.analyzed)}/{total} videos analyzed")
    return outcome
