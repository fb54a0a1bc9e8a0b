from __future__ import annotations

import asyncio
import html
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger
from youtube_transcript_api import YouTubeTranscriptApi

from interviewiq.config import settings
from interviewiq.models.events import SSEEvent, Stage
from interviewiq.models.research import SourceKind, TranscriptRecord, VideoRecord
from interviewiq.services import streaming

AUTO = "auto"

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ar": "Arabic",
    "ru": "Russian",
    "zh": "Chinese",
}

_WHITESPACE = re.compile(r"\s+")


@dataclass
class TranscriptBatch:
    transcripts: list[TranscriptRecord] = field(default_factory=list)
    failed: list[VideoRecord] = field(default_factory=list)


def build_transcript_api() -> YouTubeTranscriptApi:
    return YouTubeTranscriptApi()


def language_strategies() -> list[str]:
    """Auto-detect first, then the configured language codes in order."""
    return [AUTO, *settings.transcript_language_list]


def _segment_texts(fetched: Any) -> list[str]:
    texts: list[str] = []
    for segment in fetched:
        if isinstance(segment, dict):
            texts.append(str(segment.get("text") or ""))
        else:
            texts.append(str(getattr(segment, "text", "") or ""))
    return texts


def _fetch_with_strategy(api: Any, video_id: str, strategy: str) -> tuple[list[str], str]:
    if strategy == AUTO:
        for transcript in api.list(video_id):
            return _segment_texts(transcript.fetch()), transcript.language_code or AUTO
        return [], AUTO
    return _segment_texts(api.fetch(video_id, languages=[strategy])), strategy


def fetch_segments(video_id: str, api: Any | None = None) -> tuple[list[str], str]:
    """Try each language strategy in order; stop at the first non-empty transcript."""
    api = api or build_transcript_api()
    for strategy in language_strategies():
        try:
            segments, language = _fetch_with_strategy(api, video_id, strategy)
        except Exception as e:
            logger.debug(f"Transcript {video_id} [{strategy}] unavailable: {type(e).__name__}")
            continue
        if segments:
            return segments, language
    return [], "unknown"


def normalize_text(segments: list[str]) -> str:
    joined = html.unescape(" ".join(segments))
    return _WHITESPACE.sub(" ", joined).strip()


async def fetch(video: VideoRecord) -> TranscriptRecord | None:
    segments, language = await asyncio.to_thread(fetch_segments, video.id)
    if not segments:
        return None
    text = normalize_text(segments)
    if len(text) <= settings.transcript_min_chars:
        return None
    return TranscriptRecord(
        video_id=video.id,
        title=video.title,
        channel_name=video.channel_name,
        text=text[: settings.transcript_max_chars],
        language=language,
        source_kind=SourceKind.TRANSCRIPT,
    )


async def fetch_transcripts(
    videos: list[VideoRecord],
    *,
    on_progress: Callable[[SSEEvent], None],
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> TranscriptBatch:
    """Fetch transcripts for every video; videos without one go to ``failed``."""
    batch = TranscriptBatch()
    for index, video in enumerate(videos):
        try:
            record = await fetch(video)
        except Exception as e:
            logger.warning(f"Transcript fetch crashed for {video.id}: {e}")
            record = None
        if record is not None:
            batch.transcripts.append(record)
        else:
            batch.failed.append(video)

        on_progress(
            streaming.active(
                Stage.TRANSCRIPT_FETCH,
                f"Read {len(batch.transcripts)} transcripts "
                f"({index + 1}/{len(videos)} videos scanned)...",
            )
        )
        if index < len(videos) - 1:
            await sleep(settings.transcript_fetch_delay_seconds)

    logger.info(
        f"Transcripts: {len(batch.transcripts)} fetched, {len(batch.failed)} need model analysis"
    )
    return batch


def describe_languages(transcripts: list[TranscriptRecord]) -> str:
    codes: list[str] = []
    for record in transcripts:
        if record.language in ("unknown", AUTO) or record.language in codes:
            continue
        codes.append(record.language)
    return ", ".join(LANGUAGE_NAMES.get(code, code) for code in codes)
