from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from typing import Any, AsyncGenerator, Awaitable, Callable

from loguru import logger

from interviewiq import llm_client
from interviewiq.agents.analyzer_agent import AnalyzerAgent
from interviewiq.agents.web_research import WebResearchAgent
from interviewiq.config import settings
from interviewiq.errors import (
    InterviewIQError,
    MalformedResponse,
    QuotaExhausted,
    RateLimited,
    TransientProviderError,
)
from interviewiq.models.events import EventType, ProgressStatus, SSEEvent, Stage
from interviewiq.models.policy import ModePolicy
from interviewiq.models.research import (
    ResearchReport,
    ResearchRequest,
    TranscriptRecord,
    VideoRecord,
    WebDossier,
)
from interviewiq.services import logger as log_service
from interviewiq.services import streaming
from interviewiq.services.progress_channel import ProgressChannel
from interviewiq.tools import transcripts as transcript_tool
from interviewiq.tools import video_analyzer, wikipedia, youtube_search

Emit = Callable[[SSEEvent], None]


def compile_narrative(
    video_analysis: str,
    encyclopedia: str | None,
    dossier: WebDossier | None,
) -> str:
    sections = []
    if video_analysis:
        sections.append(f"\n=== VIDEO INTERVIEW ANALYSIS ===\n{video_analysis}\n")
    if encyclopedia:
        sections.append(f"\n=== WIKIPEDIA ===\n{encyclopedia}\n")
    if dossier is not None and dossier.profile_text:
        sections.append(f"\n=== WEB INTELLIGENCE ===\n{dossier.profile_text}\n")
    return "".join(sections)


class ResearchOrchestrator:
    """Runs the guest research pipeline for one request.

    Flow:
      1. Name check (typo correction)
      2. YouTube search across the mode's query set
      3. Transcript fetch for every relevant video
      4. Model watch for videos without a transcript
      5. Deep synthesis over the collected corpus, metadata analysis as fallback
      6. Web dossier and Wikipedia, concurrently
      7. Compile the final report

    Every stage reports progress through a ProgressChannel. Stages degrade
    rather than stop; only a missing subject, missing credentials, or a YouTube
    quota failure with nothing collected end the run with an error event.
    """

    def __init__(
        self,
        run_id: str | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._sleep = sleep
        self._current_stage: Stage | None = None
        self.report: ResearchReport | None = None

    async def research(self, request: ResearchRequest) -> AsyncGenerator[SSEEvent, None]:
        """Yield progress events, then exactly one result or error event."""
        channel = ProgressChannel(settings.progress_buffer_size)
        task = asyncio.create_task(self._run_into(request, channel))
        try:
            async for event in channel:
                yield event
        finally:
            if not task.done():
                logger.info(f"Research {self.run_id}: consumer gone, cancelling run")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if channel.dropped:
                logger.warning(f"Research {self.run_id}: dropped {channel.dropped} progress events")

    async def run_to_completion(
        self, request: ResearchRequest
    ) -> tuple[ResearchReport | None, list[SSEEvent]]:
        """Convenience: collect every event, return (report, all_events)."""
        events: list[SSEEvent] = []
        async for event in self.research(request):
            events.append(event)
        return self.report, events

    async def _run_into(self, request: ResearchRequest, channel: ProgressChannel) -> None:
        try:
            report = await self._run(request, self._emitter(channel))
            self.report = report
            channel.publish(streaming.result(report))
        except asyncio.CancelledError:
            log_service.log_research_step(self.run_id, "run", "cancelled")
            raise
        except InterviewIQError as e:
            log_service.log_research_step(
                self.run_id, "run", "failed", {"error": e.message, "kind": type(e).__name__}
            )
            channel.publish(streaming.error(e.message, kind=type(e).__name__))
        except Exception as e:
            logger.exception(f"Research {self.run_id} crashed")
            channel.publish(streaming.error(f"Research failed unexpectedly: {e}"))
        finally:
            channel.close()

    def _emitter(self, channel: ProgressChannel) -> Emit:
        def emit(event: SSEEvent) -> None:
            if event.event == EventType.PROGRESS:
                stage = Stage(event.stage)
                status = event.data.get("status")
                if stage != self._current_stage or status != ProgressStatus.ACTIVE.value:
                    log_service.log_research_step(
                        self.run_id, stage.value, status, {"message": event.data.get("message")}
                    )
                self._current_stage = stage
            channel.publish(event)

        return emit

    async def _run(self, request: ResearchRequest, emit: Emit) -> ResearchReport:
        subject = request.subject_name.strip()
        if not subject:
            raise InterviewIQError("Guest name is required")

        # Credentials are resolved before any stage so a missing key fails fast.
        youtube_search.resolve_api_key(request.search_api_key)
        llm_client.resolve_api_key(request.llm_api_key)

        policy = ModePolicy.for_mode(request.mode)
        started_at = time.monotonic()
        logger.info(
            f"Research {self.run_id}: {subject!r} [{policy.mode.value.upper()}]"
            + (f" (context: {request.context})" if request.context else "")
        )
        emit(streaming.active(Stage.START, f"Starting deep research on {subject}..."))

        analyzer = AnalyzerAgent(api_key=request.llm_api_key)
        search_name = await self._name_check(analyzer, subject, emit)
        videos = await self._media_search(search_name, request, policy, emit)
        transcripts, pending = await self._transcript_fetch(videos, emit)
        watched = await self._model_watch(pending, request, policy, emit)
        video_analysis = await self._corpus_synthesis(
            analyzer, search_name, request.context, transcripts, watched, videos, policy, emit
        )
        encyclopedia, dossier = await self._web_and_encyclopedia(search_name, request, emit)

        emit(streaming.active(Stage.COMPILE, "Compiling comprehensive intelligence report..."))
        narrative = compile_narrative(video_analysis, encyclopedia, dossier)
        report = ResearchReport(
            subject_name=search_name,
            original_query=subject,
            corrected_name=search_name if search_name != subject else None,
            total_videos_found=len(videos),
            videos_analyzed_count=len(transcripts) + len(watched),
            transcript_count=len(transcripts),
            model_watched_count=len(watched),
            videos=videos,
            combined_narrative=narrative,
            video_analysis_text=video_analysis,
            encyclopedia_text=encyclopedia,
            web_dossier=dossier,
        )
        emit(streaming.done(Stage.COMPILE, "Intelligence report ready"))
        emit(streaming.done(Stage.COMPLETE, "Research complete!"))

        logger.info(
            f"Research {self.run_id} finished in {time.monotonic() - started_at:.1f}s: "
            f"{report.total_videos_found} videos, {len(transcripts)} transcripts, "
            f"{len(watched)} AI-watched, web {'ok' if dossier else 'failed'}"
        )
        return report

    async def _name_check(self, analyzer: AnalyzerAgent, subject: str, emit: Emit) -> str:
        emit(streaming.active(Stage.NAME_CHECK, "Verifying guest name..."))
        try:
            corrected = await analyzer.correct_name(subject)
        except InterviewIQError as e:
            logger.warning(f"Name correction failed: {e}")
            emit(streaming.done(Stage.NAME_CHECK, f"Using: {subject}"))
            return subject

        if corrected.lower() != subject.lower():
            logger.info(f"Name corrected: {subject!r} -> {corrected!r}")
            emit(streaming.done(Stage.NAME_CHECK, f"Corrected to: {corrected}"))
        else:
            emit(streaming.done(Stage.NAME_CHECK, f"Confirmed: {corrected}"))
        return corrected

    async def _media_search(
        self,
        search_name: str,
        request: ResearchRequest,
        policy: ModePolicy,
        emit: Emit,
    ) -> list[VideoRecord]:
        emit(
            streaming.active(
                Stage.MEDIA_SEARCH,
                f"Searching YouTube for {search_name} interviews, podcasts, talks...",
            )
        )
        try:
            outcome = await youtube_search.search(
                search_name, api_key=request.search_api_key, policy=policy
            )
        except QuotaExhausted as e:
            emit(streaming.failed(Stage.MEDIA_SEARCH, e.message))
            raise
        except TransientProviderError as e:
            logger.error(f"YouTube search failed: {e}")
            emit(streaming.failed(Stage.MEDIA_SEARCH, f"YouTube search failed: {e}"))
            return []

        emit(
            streaming.done(
                Stage.MEDIA_SEARCH, f"Found {outcome.total_found} relevant YouTube videos"
            )
        )
        return outcome.videos

    async def _transcript_fetch(
        self, videos: list[VideoRecord], emit: Emit
    ) -> tuple[list[TranscriptRecord], list[VideoRecord]]:
        if not videos:
            emit(streaming.done(Stage.TRANSCRIPT_FETCH, "No videos to read"))
            return [], []

        emit(
            streaming.active(
                Stage.TRANSCRIPT_FETCH,
                f"Reading transcripts from all {len(videos)} videos (any language)...",
            )
        )
        try:
            batch = await transcript_tool.fetch_transcripts(
                videos, on_progress=emit, sleep=self._sleep
            )
        except Exception:
            logger.exception("Transcript fetching crashed")
            emit(
                streaming.failed(
                    Stage.TRANSCRIPT_FETCH,
                    "Transcript fetching failed, AI will analyze videos directly",
                )
            )
            return [], list(videos)

        languages = transcript_tool.describe_languages(batch.transcripts)
        language_note = f" ({languages})" if languages else ""
        emit(
            streaming.done(
                Stage.TRANSCRIPT_FETCH,
                f"Read {len(batch.transcripts)} transcripts{language_note}, "
                f"{len(batch.failed)} videos need AI analysis",
            )
        )
        return batch.transcripts, batch.failed

    async def _model_watch(
        self,
        pending: list[VideoRecord],
        request: ResearchRequest,
        policy: ModePolicy,
        emit: Emit,
    ) -> list[TranscriptRecord]:
        if not pending:
            emit(streaming.done(Stage.MODEL_WATCH, "No videos need AI analysis"))
            return []

        cap_note = f" (max {policy.model_watch_cap} in Free mode)" if policy.model_watch_cap else ""
        emit(
            streaming.active(
                Stage.MODEL_WATCH,
                f"AI watching {len(pending)} videos without transcripts{cap_note}...",
            )
        )
        try:
            outcome = await video_analyzer.analyze_videos(
                pending,
                policy=policy,
                api_key=request.llm_api_key,
                on_progress=emit,
                sleep=self._sleep,
            )
        except Exception:
            logger.exception("AI video analysis crashed")
            emit(streaming.failed(Stage.MODEL_WATCH, "Some videos could not be analyzed"))
            return []
        if not outcome.circuit_open:
            emit(
                streaming.done(
                    Stage.MODEL_WATCH,
                    f"AI analyzed {len(outcome.analyzed)} videos directly (no transcripts needed)",
                )
            )
        return outcome.analyzed

    async def _corpus_synthesis(
        self,
        analyzer: AnalyzerAgent,
        search_name: str,
        context: str,
        transcripts: list[TranscriptRecord],
        watched: list[TranscriptRecord],
        videos: list[VideoRecord],
        policy: ModePolicy,
        emit: Emit,
    ) -> str:
        records = [*transcripts, *watched]
        if not records and not videos:
            emit(streaming.done(Stage.CORPUS_SYNTHESIS, "No video content to analyze"))
            return ""

        text = ""
        if records:
            emit(
                streaming.active(
                    Stage.CORPUS_SYNTHESIS,
                    f"AI deep-reading {len(records)} videos pin-to-pin...",
                )
            )
            text = await self._synthesize_with_retry(
                analyzer, search_name, context, records, policy, emit
            )
            if text:
                emit(
                    streaming.done(
                        Stage.CORPUS_SYNTHESIS,
                        f"Deep-analyzed {len(records)} videos ({len(transcripts)} transcripts "
                        f"+ {len(watched)} AI-watched)",
                    )
                )
                return text

        if not videos:
            return text

        emit(
            streaming.active(
                Stage.CORPUS_SYNTHESIS,
                f"AI analyzing {len(videos)} video titles & patterns...",
            )
        )
        try:
            text = await analyzer.analyze_metadata(search_name, videos, context)
        except InterviewIQError as e:
            logger.error(f"Metadata analysis failed: {e}")
            emit(streaming.failed(Stage.CORPUS_SYNTHESIS, "Video analysis encountered an issue"))
            return ""
        emit(streaming.done(Stage.CORPUS_SYNTHESIS, f"Analyzed patterns across {len(videos)} videos"))
        return text

    async def _synthesize_with_retry(
        self,
        analyzer: AnalyzerAgent,
        search_name: str,
        context: str,
        records: list[TranscriptRecord],
        policy: ModePolicy,
        emit: Emit,
    ) -> str:
        max_attempts = max(policy.synthesis_max_attempts, 1)
        for attempt in range(1, max_attempts + 1):
            try:
                return await analyzer.synthesize_corpus(search_name, records, context)
            except RateLimited as e:
                logger.warning(f"Analysis attempt {attempt} rate limited: {str(e)[:150]}")
                if attempt == max_attempts:
                    break
                delay = attempt * policy.synthesis_backoff_seconds
                emit(
                    streaming.active(
                        Stage.CORPUS_SYNTHESIS,
                        f"Rate limit hit, retrying in {delay:.0f}s... "
                        f"(attempt {attempt + 1}/{max_attempts})",
                    )
                )
                await self._sleep(delay)
            except (TransientProviderError, MalformedResponse) as e:
                logger.error(f"Analysis attempt {attempt} failed: {str(e)[:150]}")
                break

        emit(streaming.failed(Stage.CORPUS_SYNTHESIS, "Deep analysis failed, trying metadata..."))
        return ""

    async def _web_and_encyclopedia(
        self,
        search_name: str,
        request: ResearchRequest,
        emit: Emit,
    ) -> tuple[str | None, WebDossier | None]:
        emit(
            streaming.active(
                Stage.WEB_AND_ENCYCLOPEDIA,
                "Searching articles, blogs, news, Wikipedia, social media...",
            )
        )
        web_agent = WebResearchAgent(api_key=request.llm_api_key)
        dossier_result, wiki_result = await asyncio.gather(
            web_agent.research(search_name),
            wikipedia.fetch(search_name),
            return_exceptions=True,
        )

        dossier: WebDossier | None = None
        if isinstance(dossier_result, BaseException):
            logger.opt(exception=dossier_result).error("Web research failed")
        else:
            dossier = dossier_result

        encyclopedia: str | None = None
        if isinstance(wiki_result, BaseException):
            logger.opt(exception=wiki_result).error("Wikipedia lookup failed")
        elif wiki_result:
            encyclopedia = wiki_result
            logger.info(f"Wikipedia: {len(encyclopedia)} chars")

        source_count = len(dossier.cited_sources) if dossier else 0
        wiki_note = " + Wikipedia" if encyclopedia else ""
        emit(
            streaming.done(
                Stage.WEB_AND_ENCYCLOPEDIA, f"Read {source_count} web sources{wiki_note}"
            )
        )
        return encyclopedia, dossier
