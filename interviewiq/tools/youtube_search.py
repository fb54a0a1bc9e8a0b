from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from interviewiq.config import settings
from interviewiq.errors import (
    MissingCredential,
    QuotaExhausted,
    TransientProviderError,
    is_quota_message,
)
from interviewiq.models.policy import ModePolicy
from interviewiq.models.research import ResearchMode, VideoRecord

SHARED_QUOTA_MESSAGE = (
    "QUOTA_EXHAUSTED: The shared YouTube API daily quota is exhausted. It resets at "
    "midnight Pacific Time. Try again later, or add your own YouTube API key in Settings."
)
OWN_KEY_QUOTA_MESSAGE = (
    "QUOTA_EXHAUSTED: Your YouTube API key has used up its daily quota. It resets at "
    "midnight Pacific Time. Try again later or save a different key in Settings."
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class SearchOutcome:
    videos: list[VideoRecord] = field(default_factory=list)
    total_found: int = 0
    raw_count: int = 0
    queries_run: int = 0
    quota_errors: int = 0


def resolve_api_key(user_key: str | None = None) -> str:
    key = (user_key or "").strip() or settings.youtube_api_key.strip()
    if not key:
        raise MissingCredential("YouTube API key is missing. Please configure it in Settings.")
    return key


def _provider_error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return response.text
    reasons = " ".join(
        str(item.get("reason", "")) for item in error.get("errors", []) if isinstance(item, dict)
    )
    return f"{error.get('message', '')} {reasons}".strip()


def _to_video(item: dict[str, Any]) -> VideoRecord | None:
    video_id = (item.get("id") or {}).get("videoId")
    if not video_id:
        return None
    snippet = item.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")
    return VideoRecord(
        id=video_id,
        title=snippet.get("title", "") or "",
        description=snippet.get("description", "") or "",
        channel_name=snippet.get("channelTitle", "") or "",
        published_at=snippet.get("publishedAt", "") or "",
        thumbnail_url=thumbnail,
    )


async def search_once(
    client: httpx.AsyncClient,
    query: str,
    *,
    api_key: str,
    max_results: int,
) -> list[VideoRecord]:
    """Run one YouTube search query. Quota errors raise QuotaExhausted."""
    params = {
        "part": "snippet",
        "q": query,
        "type": "video",
        "maxResults": max_results,
        "order": "relevance",
        "videoDuration": "long",
        "key": api_key,
    }
    try:
        response = await client.get(f"{settings.youtube_api_base_url}/search", params=params)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        message = _provider_error_text(e.response)
        if is_quota_message(message):
            raise QuotaExhausted(message) from e
        raise TransientProviderError(message or str(e)) from e
    except httpx.HTTPError as e:
        raise TransientProviderError(str(e)) from e
    except ValueError as e:
        raise TransientProviderError(f"Unreadable search response: {e}") from e

    items = (payload.get("items") if isinstance(payload, dict) else None) or []
    return [video for video in (_to_video(item) for item in items) if video is not None]


def name_tokens(subject_name: str) -> tuple[str, str]:
    parts = [part for part in subject_name.lower().split() if len(part) > 2]
    if not parts:
        return "", ""
    return parts[0], parts[-1]


def is_relevant(video: VideoRecord, subject_name: str) -> bool:
    full_name = subject_name.lower().strip()
    first, last = name_tokens(subject_name)
    title = html.unescape(video.title).lower()
    description = html.unescape(video.description).lower()
    channel = html.unescape(video.channel_name).lower()
    everything = f"{title} {description} {channel}"

    if full_name and full_name in everything:
        return True
    if last and last in title:
        return True
    if first and last and first in everything and last in everything:
        return True
    # plain substring test; common first names match unrelated channels
    return any(token and token in channel for token in (last, first))


def _published(video: VideoRecord) -> datetime:
    try:
        parsed = datetime.fromisoformat(video.published_at.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_relevant(videos: list[VideoRecord], subject_name: str) -> list[VideoRecord]:
    relevant = [video for video in videos if is_relevant(video, subject_name)]
    relevant.sort(key=_published, reverse=True)
    return relevant


async def search(
    subject_name: str,
    api_key: str | None = None,
    policy: ModePolicy | None = None,
) -> SearchOutcome:
    """Search YouTube for interviews, podcasts and talks featuring the subject."""
    key = resolve_api_key(api_key)
    policy = policy or ModePolicy.for_mode(ResearchMode.FREE)
    queries = policy.build_queries(subject_name)
    quota_limit = policy.quota_error_limit(len(queries))
    video_cap = policy.max_accumulated_videos

    logger.info(
        f"YouTube: {policy.mode.value} mode, {len(queries)} queries, "
        f"maxResults={policy.max_results_per_query}"
    )

    collected: dict[str, VideoRecord] = {}
    outcome = SearchOutcome()
    async with httpx.AsyncClient(timeout=30.0) as client:
        for query in queries:
            if video_cap is not None and len(collected) >= video_cap:
                logger.info(f"YouTube: already have {len(collected)} videos, skipping remaining queries")
                break
            if outcome.quota_errors >= quota_limit:
                logger.warning(f"YouTube: {outcome.quota_errors} quota errors, stopping search")
                break
            outcome.queries_run += 1
            try:
                found = await search_once(
                    client,
                    query,
                    api_key=key,
                    max_results=policy.max_results_per_query,
                )
            except QuotaExhausted:
                outcome.quota_errors += 1
                if outcome.quota_errors == 1:
                    logger.error("YouTube API quota exceeded")
                continue
            except TransientProviderError as e:
                logger.error(f"YouTube search error for {query!r}: {e}")
                continue
            for video in found:
                if video.id not in collected:
                    collected[video.id] = video

    if outcome.quota_errors > 0 and not collected:
        own_key = bool((api_key or "").strip())
        raise QuotaExhausted(OWN_KEY_QUOTA_MESSAGE if own_key else SHARED_QUOTA_MESSAGE)

    outcome.raw_count = len(collected)
    outcome.videos = filter_relevant(list(collected.values()), subject_name)
    outcome.total_found = len(outcome.videos)
    logger.info(
        f"YouTube: {outcome.raw_count} raw -> {outcome.total_found} relevant "
        f"(from {outcome.queries_run} queries)"
    )
    return outcome
