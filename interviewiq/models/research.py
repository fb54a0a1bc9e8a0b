from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ResearchMode(str, Enum):
    FREE = "free"
    PRO = "pro"


class SourceKind(str, Enum):
    TRANSCRIPT = "transcript"
    MODEL_WATCHED = "model_watched"


class DossierSource(str, Enum):
    LIVE_SEARCH = "live_search"
    MODEL_KNOWLEDGE = "model_knowledge"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ResearchRequest(_Record):
    """Immutable input to one orchestration run."""
    subject_name: str
    context: str = ""
    mode: ResearchMode = ResearchMode.FREE
    search_api_key: Optional[str] = None
    llm_api_key: Optional[str] = None


class VideoRecord(_Record):
    id: str
    title: str = ""
    description: str = ""
    channel_name: str = ""
    published_at: str = ""
    thumbnail_url: Optional[str] = None

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.id}"


class TranscriptRecord(_Record):
    video_id: str
    title: str
    channel_name: str
    text: str
    language: str
    source_kind: SourceKind = SourceKind.TRANSCRIPT


class WebSource(_Record):
    title: str
    url: str


class WebDossier(_Record):
    profile_text: str
    source_kind: DossierSource
    cited_sources: list[WebSource] = []


class ResearchReport(_Record):
    """Terminal artifact of a research run."""
    subject_name: str
    original_query: str
    corrected_name: Optional[str] = None
    total_videos_found: int = 0
    videos_analyzed_count: int = 0
    transcript_count: int = 0
    model_watched_count: int = 0
    videos: list[VideoRecord] = []
    combined_narrative: str = ""
    video_analysis_text: str = ""
    encyclopedia_text: Optional[str] = None
    web_dossier: Optional[WebDossier] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
