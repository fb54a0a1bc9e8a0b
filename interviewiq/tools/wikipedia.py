from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from interviewiq.config import settings


def _title_slug(title: str) -> str:
    return quote("_".join(title.split()), safe="")


def _summary_url(title: str) -> str:
    return f"{settings.wikipedia_base_url}/api/rest_v1/page/summary/{_title_slug(title)}"


def _action_url() -> str:
    return f"{settings.wikipedia_base_url}/w/api.php"


async def _search_title(client: httpx.AsyncClient, subject_name: str) -> str | None:
    response = await client.get(
        _action_url(),
        params={
            "action": "query",
            "list": "search",
            "srsearch": subject_name,
            "format": "json",
            "srlimit": 1,
        },
    )
    if response.status_code != 200:
        return None
    hits = ((response.json() or {}).get("query") or {}).get("search") or []
    if not hits:
        return None
    return hits[0].get("title") or None


async def fetch_summary(client: httpx.AsyncClient, subject_name: str) -> dict[str, Any] | None:
    """Direct title lookup, then a single search fallback when the title 404s."""
    response = await client.get(_summary_url(subject_name))
    if response.status_code == 404:
        title = await _search_title(client, subject_name)
        if not title:
            return None
        response = await client.get(_summary_url(title))

    if response.status_code != 200:
        return None
    summary = response.json() or {}
    if not summary.get("extract") or summary.get("type") == "disambiguation":
        return None
    return summary


async def fetch_article(client: httpx.AsyncClient, title: str) -> str:
    response = await client.get(
        _action_url(),
        params={
            "action": "query",
            "titles": title,
            "prop": "extracts",
            "explaintext": 1,
            "format": "json",
        },
    )
    if response.status_code != 200:
        return ""
    pages = ((response.json() or {}).get("query") or {}).get("pages") or {}
    for page in pages.values():
        return str(page.get("extract") or "")
    return ""


def format_entry(summary: dict[str, Any], article: str) -> str:
    text = f"WIKIPEDIA: {summary.get('title', '')}\n{summary.get('description') or ''}\n\n"
    text += f"SUMMARY: {summary['extract']}\n\n"
    if len(article) > settings.wikipedia_min_article_chars:
        text += f"FULL ARTICLE:\n{article[: settings.wikipedia_article_char_cap]}"
    return text


async def fetch(subject_name: str) -> str | None:
    """Look up the subject's encyclopedia entry. Returns None when there is none."""
    try:
        async with httpx.AsyncClient(
            timeout=30.0,
            headers={"User-Agent": settings.wikipedia_user_agent},
            follow_redirects=True,
        ) as client:
            summary = await fetch_summary(client, subject_name)
            if summary is None:
                logger.info(f"No Wikipedia article found for {subject_name!r}")
                return None
            article = await fetch_article(client, summary.get("title") or subject_name)
    except (httpx.HTTPError, ValueError) as e:
        logger.info(f"Wikipedia fetch failed: {e}")
        return None

    text = format_entry(summary, article)
    logger.info(f"Wikipedia found: {summary.get('title')!r} ({len(text)} chars)")
    return text
