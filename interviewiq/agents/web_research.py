from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from loguru import logger

from interviewiq import llm_client
from interviewiq.errors import MalformedResponse, RateLimited, TransientProviderError
from interviewiq.models.research import DossierSource, WebDossier, WebSource
from interviewiq.services.prompt_store import render_prompt

_PROVIDER_FAILURES = (RateLimited, TransientProviderError, MalformedResponse)


def grounding_sources(response: Any) -> list[WebSource]:
    """Read cited pages from the first candidate's grounding chunks, in order."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources: list[WebSource] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None) if web is not None else None
        if not uri:
            continue
        title = getattr(web, "title", None) or urlparse(uri).hostname or uri
        sources.append(WebSource(title=title, url=uri))
    return sources


class WebResearchAgent:
    """Compiles a web dossier with live search, falling back to model knowledge."""

    name = "web_research"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key

    async def research(self, subject_name: str) -> WebDossier | None:
        prompt = render_prompt("web_dossier.prompt", subject=subject_name)
        try:
            generation = await llm_client.generate(
                "web_dossier",
                prompt,
                api_key=self.api_key,
                caller=f"{self.name}.grounded",
            )
            if not generation.text:
                raise MalformedResponse("Grounded search returned no text.")
        except _PROVIDER_FAILURES as e:
            logger.warning(f"Grounded web research failed, using model knowledge: {str(e)[:200]}")
            return await self._knowledge_only(prompt)

        try:
            sources = grounding_sources(generation.response)
        except (AttributeError, TypeError) as e:
            logger.warning(f"Could not read grounding metadata: {e}")
            sources = []
        logger.info(f"Web research: {len(sources)} sources")
        return WebDossier(
            profile_text=generation.text,
            source_kind=DossierSource.LIVE_SEARCH,
            cited_sources=sources,
        )

    async def _knowledge_only(self, prompt: str) -> WebDossier | None:
        try:
            generation = await llm_client.generate(
                "web_dossier_fallback",
                prompt,
                api_key=self.api_key,
                caller=f"{self.name}.knowledge",
            )
        except _PROVIDER_FAILURES as e:
            logger.error(f"Web research fallback failed: {str(e)[:200]}")
            return None
        if not generation.text:
            return None
        return WebDossier(profile_text=generation.text, source_kind=DossierSource.MODEL_KNOWLEDGE)
