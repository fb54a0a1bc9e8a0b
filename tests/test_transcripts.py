from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from interviewiq.models.research import SourceKind, TranscriptRecord, VideoRecord
from interviewiq.tools import transcripts


class FakeTranscriptApi:
    """Transcript API double that only has captions in the given languages."""

    def __init__(self, available: dict[str, list[str]], auto: tuple[str, list[str]] | None = None):
        self.available = available
        self.auto = auto
        self.calls: list[str] = []

    def list(self, video_id):
        self.calls.append("auto")
        if self.auto is None:
            raise RuntimeError("TranscriptsDisabled")
        code, texts = self.auto
        fetched = [SimpleNamespace(text=t) for t in texts]
        return [SimpleNamespace(language_code=code, fetch=lambda: fetched)]

    def fetch(self, video_id, languages):
        code = languages[0]
        self.calls.append(code)
        if code not in self.available:
            raise RuntimeError("NoTranscriptFound")
        return [SimpleNamespace(text=t) for t in self.available[code]]


def make_video(video_id: str = "v1") -> VideoRecord:
    return VideoRecord(id=video_id, title="Jane Doe interview", channel_name="Chan")


def test_language_strategies_start_with_auto_then_fixed_order():
    assert transcripts.language_strategies() == [
        "auto", "en", "hi", "es", "pt", "fr", "de", "ja", "ko", "ar", "ru", "zh",
    ]


def test_fetch_segments_walks_languages_in_order():
    api = FakeTranscriptApi({"hi": ["namaste", "duniya"]})

    segments, language = transcripts.fetch_segments("v1", api=api)

    assert segments == ["namaste", "duniya"]
    assert language == "hi"
    assert api.calls == ["auto", "en", "hi"]


def test_fetch_segments_prefers_auto_detected_transcript():
    api = FakeTranscriptApi({"en": ["hello"]}, auto=("es", ["hola"]))

    segments, language = transcripts.fetch_segments("v1", api=api)

    assert segments == ["hola"]
    assert language == "es"
    assert api.calls == ["auto"]


def test_fetch_segments_gives_up_after_all_strategies():
    api = FakeTranscriptApi({})

    assert transcripts.fetch_segments("v1", api=api) == ([], "unknown")
    assert len(api.calls) == len(transcripts.language_strategies())


def test_normalize_text_decodes_and_collapses_whitespace():
    assert transcripts.normalize_text(["Tom &amp; Jerry\n", "  it&#39;s   fine"]) == "Tom & Jerry it's fine"


@pytest.mark.asyncio
async def test_short_transcript_is_rejected():
    with patch.object(transcripts, "fetch_segments", return_value=(["too short"], "en")):
        assert await transcripts.fetch(make_video()) is None


@pytest.mark.asyncio
async def test_long_transcript_is_capped():
    with patch.object(transcripts, "fetch_segments", return_value=(["word " * 5000], "en")):
        record = await transcripts.fetch(make_video())

    assert record is not None
    assert len(record.text) == 15000
    assert record.language == "en"
    assert record.source_kind == SourceKind.TRANSCRIPT


@pytest.mark.asyncio
async def test_fetch_transcripts_reports_progress_and_defers_failures():
    videos = [make_video("v1"), make_video("v2"), make_video("v3")]
    accepted = TranscriptRecord(
        video_id="v1", title="t", channel_name="c", text="x" * 200, language="en"
    )
    events = []
    sleep = AsyncMock()

    with patch.object(
        transcripts, "fetch", new=AsyncMock(side_effect=[accepted, None, RuntimeError("boom")])
    ):
        batch = await transcripts.fetch_transcripts(videos, on_progress=events.append, sleep=sleep)

    assert [r.video_id for r in batch.transcripts] == ["v1"]
    assert [v.id for v in batch.failed] == ["v2", "v3"]
    assert [e.data["message"] for e in events] == [
        "Read 1 transcripts (1/3 videos scanned)...",
        "Read 1 transcripts (2/3 videos scanned)...",
        "Read 1 transcripts (3/3 videos scanned)...",
    ]
    assert all(e.stage == "transcript_fetch" for e in events)
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.1)


def test_describe_languages_uses_display_names():
    records = [
        TranscriptRecord(video_id=str(i), title="t", channel_name="c", text="x", language=code)
        for i, code in enumerate(["en", "hi", "en", "unknown", "xx"])
    ]
    assert transcripts.describe_languages(records) == "English, Hindi, xx"


def test_build_transcript_api_returns_client():
    with patch.object(transcripts, "YouTubeTranscriptApi", MagicMock()) as api_cls:
        transcripts.build_transcript_api()
    api_cls.assert_called_once_with()
