from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from interviewiq import llm_client
from interviewiq.errors import ConfigurationError, MalformedResponse, RateLimited, TransientProviderError


def fake_client(**generate_kwargs) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(**generate_kwargs)
    return client


def test_user_key_overrides_process_default():
    with patch.object(llm_client.settings, "gemini_api_key", "env-key"):
        assert llm_client.resolve_api_key("user-key") == "user-key"
        assert llm_client.resolve_api_key(None) == "env-key"
        assert llm_client.resolve_api_key("  ") == "env-key"


def test_missing_keys_raise_configuration_error():
    with patch.object(llm_client.settings, "gemini_api_key", ""):
        with pytest.raises(ConfigurationError, match="Gemini API key is missing"):
            llm_client.resolve_api_key(None)


def test_profiles_build_expected_configs():
    grounded = llm_client.PROFILES["web_dossier"].to_config()
    assert grounded.tools and grounded.tools[0].google_search is not None

    questions = llm_client.PROFILES["questions"].to_config("system text")
    assert questions.response_mime_type == "application/json"
    assert questions.temperature == 0.85
    assert questions.max_output_tokens == 8192
    assert questions.system_instruction == "system text"

    name_check = llm_client.PROFILES["name_check"].to_config()
    assert name_check.temperature == 0.0
    assert name_check.max_output_tokens == 100
    assert not name_check.tools


@pytest.mark.asyncio
async def test_generate_returns_stripped_text():
    client = fake_client(return_value=SimpleNamespace(text="  Jane Doe \n"))
    with patch.object(llm_client, "client", return_value=client):
        generation = await llm_client.generate("name_check", "prompt", api_key="k")

    assert generation.text == "Jane Doe"
    assert generation.model == llm_client.settings.name_check_model
    kwargs = client.aio.models.generate_content.await_args.kwargs
    assert kwargs["model"] == llm_client.settings.name_check_model
    assert kwargs["contents"] == "prompt"


@pytest.mark.asyncio
async def test_generate_uses_explicit_model():
    client = fake_client(return_value=SimpleNamespace(text="{}"))
    with patch.object(llm_client, "client", return_value=client):
        generation = await llm_client.generate("questions", "p", model="gemini-2.0-flash-lite")

    assert generation.model == "gemini-2.0-flash-lite"


@pytest.mark.asyncio
async def test_generate_maps_rate_limits():
    client = fake_client(side_effect=RuntimeError("429 RESOURCE_EXHAUSTED"))
    with patch.object(llm_client, "client", return_value=client):
        with pytest.raises(RateLimited):
            await llm_client.generate("corpus_synthesis", "p")


@pytest.mark.asyncio
async def test_generate_maps_other_failures():
    client = fake_client(side_effect=RuntimeError("503 unavailable"))
    with patch.object(llm_client, "client", return_value=client):
        with pytest.raises(TransientProviderError):
            await llm_client.generate("corpus_synthesis", "p")


def test_client_is_cached_per_key():
    with patch.object(llm_client.genai, "Client", side_effect=lambda api_key: MagicMock(key=api_key)) as ctor:
        llm_client._clients.clear()
        first = llm_client.client("key-a")
        again = llm_client.client("key-a")
        other = llm_client.client("key-b")
        llm_client._clients.clear()

    assert first is again
    assert other is not first
    assert ctor.call_count == 2


def test_strip_code_fences():
    assert llm_client.strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert llm_client.strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert llm_client.strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_json_object():
    assert llm_client.parse_json_object('```json\n{"categories": []}\n```') == {"categories": []}
    with pytest.raises(MalformedResponse):
        llm_client.parse_json_object("not json")
    with pytest.raises(MalformedResponse):
        llm_client.parse_json_object("[1, 2]")
