from __future__ import annotations

import json
from datetime import timedelta
from unittest.mock import patch

import jwt
import pytest

from interviewiq.services import users


def test_issued_token_round_trips():
    token = users.issue_token("user-42")
    assert users.authenticate(token) == "user-42"


def test_expired_token_is_rejected():
    token = users.issue_token("user-42", expires_in=timedelta(seconds=-10))
    with pytest.raises(users.AuthenticationError):
        users.authenticate(token)


def test_token_signed_with_other_secret_is_rejected():
    token = jwt.encode({"userId": "user-42"}, "another-secret-that-is-long-enough-for-hs256", algorithm="HS256")
    with pytest.raises(users.AuthenticationError):
        users.authenticate(token)


def test_token_without_user_id_is_rejected():
    token = jwt.encode({"sub": "x"}, users.settings.jwt_secret, algorithm="HS256")
    with pytest.raises(users.AuthenticationError):
        users.authenticate(token)


def test_api_keys_read_from_user_file(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(
        json.dumps(
            {
                "jane@example.com": {"id": "user-1", "youtubeApiKey": "yt", "geminiApiKey": ""},
                "user-2": {"id": "user-2", "geminiApiKey": "gm"},
            }
        ),
        encoding="utf-8",
    )
    with patch.object(users.settings, "users_file", str(path)):
        assert users.get_api_keys("user-1") == {"youtubeApiKey": "yt", "geminiApiKey": ""}
        assert users.get_api_keys("user-2") == {"youtubeApiKey": "", "geminiApiKey": "gm"}
        assert users.get_api_keys("missing") == {"youtubeApiKey": "", "geminiApiKey": ""}


def test_missing_or_broken_user_file_means_no_keys(tmp_path):
    broken = tmp_path / "users.json"
    broken.write_text("{not json", encoding="utf-8")
    with patch.object(users.settings, "users_file", str(tmp_path / "absent.json")):
        assert users.get_api_keys("user-1") == {"youtubeApiKey": "", "geminiApiKey": ""}
    with patch.object(users.settings, "users_file", str(broken)):
        assert users.get_api_keys("user-1") == {"youtubeApiKey": "", "geminiApiKey": ""}
