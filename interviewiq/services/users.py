"""Bearer-token authentication and per-user API keys.

Users live in a JSON file keyed by user id, the same file the account service
writes. Only the fields this service needs are read here.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt
from loguru import logger

from interviewiq.config import settings


class AuthenticationError(Exception):
    """Token missing, malformed, expired, or signed with another secret."""


def issue_token(user_id: str, *, expires_in: timedelta | None = None) -> str:
    expires_in = expires_in or timedelta(days=settings.jwt_expiry_days)
    payload = {
        "userId": user_id,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def authenticate(token: str) -> str:
    """Return the user id carried by ``token`` or raise AuthenticationError."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        raise AuthenticationError(str(e)) from e
    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise AuthenticationError("Token has no userId")
    return user_id


def _load_users() -> dict[str, Any]:
    path = Path(settings.users_file)
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Error loading users from {path}: {e}")
        return {}
    return payload if isinstance(payload, dict) else {}


def _find_user(user_id: str) -> dict[str, Any] | None:
    users = _load_users()
    user = users.get(user_id)
    if isinstance(user, dict):
        return user
    for candidate in users.values():
        if isinstance(candidate, dict) and candidate.get("id") == user_id:
            return candidate
    return None


def get_api_keys(user_id: str) -> dict[str, str]:
    """Stored keys for the user; empty strings when unset or the user is unknown."""
    user = _find_user(user_id) or {}
    return {
        "youtubeApiKey": str(user.get("youtubeApiKey") or ""),
        "geminiApiKey": str(user.get("geminiApiKey") or ""),
    }
