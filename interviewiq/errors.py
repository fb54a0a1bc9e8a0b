"""Error taxonomy shared by the research pipeline and the API layer."""

from __future__ import annotations

import re

RATE_LIMIT_PATTERN = re.compile(
    r"\b429\b|quota|rate[\s_-]?limit|resource[\s_]exhausted|too many requests",
    re.IGNORECASE,
)


class InterviewIQError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, *, retryable: bool = False):
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class ConfigurationError(InterviewIQError):
    """A required credential or setting is missing. Never retried."""


MissingCredential = ConfigurationError


class QuotaExhausted(InterviewIQError):
    """Provider-wide quota is gone and nothing was collected."""


class RateLimited(InterviewIQError):
    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class TransientProviderError(InterviewIQError):
    """Generic network/service failure for one unit of work."""


class MalformedResponse(InterviewIQError):
    """Model output could not be parsed into the expected shape."""


def is_rate_limited(exc: BaseException) -> bool:
    """True for errors worth retrying after a backoff."""
    if isinstance(exc, InterviewIQError):
        return exc.retryable
    code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    if code == 429:
        return True
    return bool(RATE_LIMIT_PATTERN.search(str(exc)))


def is_quota_message(text: str) -> bool:
    lowered = (text or "").lower()
    return "quota" in lowered or "exceeded" in lowered
