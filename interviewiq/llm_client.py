"""Gemini client factory with per-user credential resolution and call profiles."""
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

from google import genai
from google.genai import types

from interviewiq.config import settings
from interviewiq.errors import (
    ConfigurationError,
    MalformedResponse,
    RateLimited,
    TransientProviderError,
    is_rate_limited,
)
from interviewiq.services import logger as log_service


@dataclass(frozen=True)
class GenerationProfile:
    """Fixed generation parameters for one kind of model call."""

    model_setting: str
    temperature: float | None = None
    max_output_tokens: int | None = None
    grounded: bool = False
    json_output: bool = False

    @property
    def model(self) -> str:
        return str(getattr(settings, self.model_setting))

    def to_config(self, system_instruction: str | None = None) -> types.GenerateContentConfig:
        kwargs: dict[str, Any] = {}
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_output_tokens is not None:
            kwargs["max_output_tokens"] = self.max_output_tokens
        if self.grounded:
            kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        if self.json_output:
            kwargs["response_mime_type"] = "application/json"
        if system_instruction:
            kwargs["system_instruction"] = system_instruction
        return types.GenerateContentConfig(**kwargs)


PROFILES: dict[str, GenerationProfile] = {
    "name_check": GenerationProfile("name_check_model", temperature=0.0, max_output_tokens=100),
    "video_watch": GenerationProfile("video_watch_model", temperature=0.3, max_output_tokens=2000),
    "corpus_synthesis": GenerationProfile("synthesis_model", temperature=0.3, max_output_tokens=16000),
    "metadata_analysis": GenerationProfile("metadata_model", temperature=0.4, max_output_tokens=6000),
    "web_dossier": GenerationProfile("web_dossier_model", grounded=True),
    "web_dossier_fallback": GenerationProfile("web_dossier_fallback_model"),
    "questions": GenerationProfile(
        "synthesis_model", temperature=0.85, max_output_tokens=8192, json_output=True
    ),
}


@dataclass
class Generation:
    text: str
    model: str
    response: Any = None


def resolve_api_key(user_key: str | None = None) -> str:
    """Per-user key wins over the process-wide default; neither is an error."""
    key = (user_key or "").strip() or settings.gemini_api_key.strip()
    if not key:
        raise ConfigurationError("Gemini API key is missing. Please configure it in Settings.")
    return key


_clients: dict[str, genai.Client] = {}


def client(api_key: str | None = None) -> genai.Client:
    """Get or create the Gemini client for the resolved key."""
    key = resolve_api_key(api_key)
    cached = _clients.get(key)
    if cached is None:
        cached = genai.Client(api_key=key)
        _clients[key] = cached
    return cached


async def generate(
    profile_name: str,
    contents: Any,
    *,
    api_key: str | None = None,
    model: str | None = None,
    system_instruction: str | None = None,
    caller: str | None = None,
) -> Generation:
    """Run one model call and map SDK failures onto the error taxonomy."""
    profile = PROFILES[profile_name]
    model_name = model or profile.model
    active_client = client(api_key)

    t0 = time.monotonic()
    try:
        response = await active_client.aio.models.generate_content(
            model=model_name,
            contents=contents,
            config=profile.to_config(system_instruction),
        )
    except Exception as e:
        elapsed_ms = int((time.monotonic() - t0) * 1000)
        log_service.log_llm_call(
            model=model_name,
            caller=caller or profile_name,
            duration_ms=elapsed_ms,
            status="error",
            error=str(e)[:200],
        )
        if is_rate_limited(e):
            raise RateLimited(str(e)) from e
        raise TransientProviderError(str(e)) from e

    elapsed_ms = int((time.monotonic() - t0) * 1000)
    log_service.log_llm_call(
        model=model_name,
        caller=caller or profile_name,
        duration_ms=elapsed_ms,
    )
    return Generation(text=(response.text or "").strip(), model=model_name, response=response)


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Model returned invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedResponse("Model returned JSON that is not an object.")
    return parsed
