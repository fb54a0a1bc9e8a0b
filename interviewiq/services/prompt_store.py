"""Prompt texts for every model call, kept in ``prompts/prompts.json``.

Prompts are addressed by dotted keys (``"synthesis.corpus"``). A value may be a
string or a list of lines, and is filled in with ``string.Template`` so the
prompt bodies can contain literal braces for JSON examples.
"""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"

_catalog: dict[str, Any] | None = None
_loaded_mtime: int | None = None


class PromptNotFound(KeyError):
    pass


def catalog() -> dict[str, Any]:
    """The parsed catalogue, reread whenever the file changes on disk."""
    global _catalog, _loaded_mtime
    mtime = PROMPTS_PATH.stat().st_mtime_ns
    if _catalog is None or mtime != _loaded_mtime:
        data = json.loads(PROMPTS_PATH.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{PROMPTS_PATH.name} must hold a JSON object")
        _catalog, _loaded_mtime = data, mtime
    return _catalog


def template_for(key: str) -> Template:
    node: Any = catalog()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise PromptNotFound(f"No prompt named {key!r}")
        node = node[part]
    if isinstance(node, list):
        node = "\n".join(map(str, node))
    if not isinstance(node, str):
        raise TypeError(f"Prompt {key!r} is a section, not a template")
    return Template(node)


def render_prompt(key: str, **values: Any) -> str:
    try:
        return template_for(key).substitute(**values)
    except KeyError as exc:
        if isinstance(exc, PromptNotFound):
            raise
        raise KeyError(f"Prompt {key!r} needs a value for {exc.args[0]!r}") from exc


def render_section(key: str, **values: str) -> str:
    """Render an optional prompt block, or "" when every value is blank."""
    if not any((value or "").strip() for value in values.values()):
        return ""
    return render_prompt(key, **values)
