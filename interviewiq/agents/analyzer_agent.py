from __future__ import annotations

from loguru import logger

from interviewiq import llm_client
from interviewiq.config import settings
from interviewiq.errors import MalformedResponse
from interviewiq.models.research import SourceKind, TranscriptRecord, VideoRecord
from interviewiq.services.prompt_store import render_prompt, render_section

MAX_CORRECTED_NAME_CHARS = 60


class AnalyzerAgent:
    """Text-model calls that turn collected evidence into analysis.

    Three calls live here: the name check that runs before any searching, the
    deep read over every accepted transcript and AI-watched summary, and the
    cheaper pass over titles and descriptions used when the deep read fails.
    Retries are the caller's business; each method makes exactly one call.
    """

    name = "analyzer"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key

    async def correct_name(self, raw_name: str) -> str:
        """Return the model's spelling of the name, or the input if the output looks wrong."""
        generation = await llm_client.generate(
            "name_check",
            render_prompt("name_check.prompt", name=raw_name),
            api_key=self.api_key,
            caller=f"{self.name}.name_check",
        )
        corrected = generation.text.strip()
        if not corrected or len(corrected) > MAX_CORRECTED_NAME_CHARS or "\n" in corrected:
            return raw_name
        return corrected

    @staticmethod
    def build_corpus(records: list[TranscriptRecord]) -> str:
        entries = []
        for record in records:
            provenance = (
                "AI-WATCHED" if record.source_kind == SourceKind.MODEL_WATCHED else "TRANSCRIPT"
            )
            entries.append(
                render_prompt(
                    "synthesis.corpus_entry",
                    provenance=provenance,
                    title=record.title,
                    channel=record.channel_name,
                    language=record.language,
                    text=record.text,
                )
            )
        return "\n".join(entries)

    async def synthesize_corpus(
        self,
        subject_name: str,
        records: list[TranscriptRecord],
        context: str = "",
    ) -> str:
        context_section = render_section("synthesis.context_section", context=context)
        corpus = self.build_corpus(records)
        logger.info(f"Deep-analyzing {len(records)} videos ({len(corpus)} chars)")
        generation = await llm_client.generate(
            "corpus_synthesis",
            render_prompt(
                "synthesis.deep",
                video_count=len(records),
                subject=subject_name,
                subject_upper=subject_name.upper(),
                context_section=context_section,
                corpus=corpus,
            ),
            api_key=self.api_key,
            caller=f"{self.name}.corpus_synthesis",
        )
        if not generation.text:
            raise MalformedResponse("Deep analysis returned no text.")
        return generation.text

    async def analyze_metadata(
        self,
        subject_name: str,
        videos: list[VideoRecord],
        context: str = "",
    ) -> str:
        """Pattern analysis over titles and descriptions only."""
        entries = [
            render_prompt(
                "synthesis.metadata_entry",
                index=index,
                title=video.title,
                channel=video.channel_name,
                published=video.published_at[:10] or "unknown date",
                description=video.description[:200] or "N/A",
            )
            for index, video in enumerate(videos[: settings.metadata_max_videos], start=1)
        ]
        context_section = render_section("synthesis.metadata_context", context=context)
        generation = await llm_client.generate(
            "metadata_analysis",
            render_prompt(
                "synthesis.metadata",
                video_count=len(videos),
                subject=subject_name,
                context_section=context_section,
                video_list="\n\n".join(entries),
            ),
            api_key=self.api_key,
            caller=f"{self.name}.metadata_analysis",
        )
        if not generation.text:
            raise MalformedResponse("Metadata analysis returned no text.")
        return generation.text
