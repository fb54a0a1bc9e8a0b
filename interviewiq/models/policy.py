from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from interviewiq.config import settings
from interviewiq.models.research import ResearchMode

BASE_QUERY_TEMPLATES = (
    '"{name}" interview',
    '"{name}" podcast',
    '"{name}" conversation',
    '"{name}" talk show',
    "{name} interview full video",
    "{name} podcast episode",
    '"{name}" इंटरव्यू',
    '"{name}" पॉडकास्ट',
)

PRO_EXTRA_QUERY_TEMPLATES = (
    '"{name}" full episode',
    '"{name}" keynote speech',
    '"{name}" panel discussion',
    '"{name}" QnA',
    '"{name}" बातचीत',
)


@dataclass(frozen=True, slots=True)
class ModePolicy:
    """Volume and rate limits applied by every pipeline stage for one mode.

    ``None`` means unbounded. A ``None`` quota tolerance means every query may
    fail on quota before the search loop gives up.
    """

    mode: ResearchMode
    include_extra_queries: bool
    max_results_per_query: int
    max_accumulated_videos: Optional[int]
    max_quota_errors: Optional[int]
    model_watch_cap: Optional[int]
    model_watch_batch_size: int
    model_watch_failure_threshold: int
    model_watch_delay_seconds: float
    synthesis_max_attempts: int = 3
    synthesis_backoff_seconds: float = 5.0

    @classmethod
    def for_mode(cls, mode: ResearchMode) -> "ModePolicy":
        if mode == ResearchMode.PRO:
            return cls(
                mode=mode,
                include_extra_queries=True,
                max_results_per_query=50,
                max_accumulated_videos=None,
                max_quota_errors=None,
                model_watch_cap=None,
                model_watch_batch_size=3,
                model_watch_failure_threshold=5,
                model_watch_delay_seconds=settings.model_watch_delay_pro_seconds,
                synthesis_max_attempts=settings.synthesis_max_attempts,
                synthesis_backoff_seconds=settings.synthesis_backoff_seconds,
            )
        return cls(
            mode=ResearchMode.FREE,
            include_extra_queries=False,
            max_results_per_query=20,
            max_accumulated_videos=100,
            max_quota_errors=3,
            model_watch_cap=15,
            model_watch_batch_size=1,
            model_watch_failure_threshold=3,
            model_watch_delay_seconds=settings.model_watch_delay_free_seconds,
            synthesis_max_attempts=settings.synthesis_max_attempts,
            synthesis_backoff_seconds=settings.synthesis_backoff_seconds,
        )

    @property
    def is_pro(self) -> bool:
        return self.mode == ResearchMode.PRO

    def build_queries(self, subject_name: str) -> list[str]:
        templates = BASE_QUERY_TEMPLATES
        if self.include_extra_queries:
            templates = templates + PRO_EXTRA_QUERY_TEMPLATES
        return [template.format(name=subject_name) for template in templates]

    def quota_error_limit(self, query_count: int) -> int:
        if self.max_quota_errors is None:
            return query_count
        return self.max_quota_errors
