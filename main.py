"""InterviewIQ - Guest Research Tool

Simple CLI for researching a guest, in-process or against a running API.
"""

import argparse
import asyncio
import json
import sys

import httpx

from interviewiq.agents.orchestrator import ResearchOrchestrator
from interviewiq.agents.question_generator import QuestionGenerator
from interviewiq.models.research import ResearchMode, ResearchRequest
from interviewiq.models.schemas import GenerateQuestionsRequest
from interviewiq.services.progress_board import ProgressBoard, SSEFrameDecoder


def print_report(report: dict) -> None:
    print(f"\n{'=' * 50}")
    print(f"REPORT: {report.get('subjectName')}")
    if report.get("correctedName"):
        print(f"   (searched as {report['correctedName']}, typed {report.get('originalQuery')})")
    print(f"   Videos found: {report.get('totalVideosFound', 0)}")
    print(
        f"   Videos analyzed: {report.get('videosAnalyzedCount', 0)} "
        f"({report.get('transcriptCount', 0)} transcripts, "
        f"{report.get('modelWatchedCount', 0)} AI-watched)"
    )
    dossier = report.get("webDossier") or {}
    for source in dossier.get("citedSources", []):
        print(f"   - {source.get('title')}: {source.get('url')}")
    print(f"{'=' * 50}")
    print(report.get("combinedNarrative", ""))


def handle_payload(board: ProgressBoard, payload: dict) -> dict | None:
    """Apply one stream payload; return the report when it is the result."""
    kind = payload.get("type")
    if kind == "progress":
        board.apply(payload)
        print(board.render(), end="\n\n", flush=True)
    elif kind == "result":
        return payload.get("data") or {}
    elif kind == "error":
        print(f"\n[!] Error: {payload.get('message', 'Unknown error')}")
    return None


async def run_local(subject: str, context: str, pro: bool) -> dict | None:
    request = ResearchRequest(
        subject_name=subject,
        context=context,
        mode=ResearchMode.PRO if pro else ResearchMode.FREE,
    )
    board = ProgressBoard()
    report = None
    async for event in ResearchOrchestrator().research(request):
        report = handle_payload(board, event.payload()) or report
    return report


async def run_remote(subject: str, context: str, server: str, token: str) -> dict | None:
    board = ProgressBoard()
    decoder = SSEFrameDecoder()
    report = None
    async with httpx.AsyncClient(timeout=None) as client:
        async with client.stream(
            "POST",
            f"{server.rstrip('/')}/api/research-guest",
            json={"guestName": subject, "context": context},
            headers={"Authorization": f"Bearer {token}"},
        ) as response:
            if response.status_code != 200:
                body = await response.aread()
                print(f"[!] Server returned {response.status_code}: {body.decode(errors='replace')}")
                return None
            async for chunk in response.aiter_text():
                for payload in decoder.feed(chunk):
                    report = handle_payload(board, payload) or report
    for payload in decoder.flush():
        report = handle_payload(board, payload) or report
    return report


async def run_questions(report: dict, count: int, interviewer: str, style: str) -> None:
    request = GenerateQuestionsRequest(
        interviewerName=interviewer,
        interviewerStyle=style or None,
        guestName=report.get("subjectName", ""),
        pastInterviewsSummary=report.get("combinedNarrative", ""),
        questionCount=count,
    )
    result = await QuestionGenerator().generate(request)
    if not result.success:
        print(f"\n[!] {result.error}")
        return
    print(json.dumps(result.data, indent=2, ensure_ascii=False))


async def run(args: argparse.Namespace) -> int:
    if args.server:
        if not args.token:
            print("[!] --token is required with --server")
            return 2
        report = await run_remote(args.subject, args.context, args.server, args.token)
    else:
        report = await run_local(args.subject, args.context, args.pro)

    if report is None:
        return 1
    print_report(report)
    if args.questions:
        await run_questions(report, args.questions, args.interviewer, args.style)
    return 0


def main():
    parser = argparse.ArgumentParser(description="InterviewIQ Guest Research Tool")
    parser.add_argument("--subject", "-s", required=True, help="Guest name to research")
    parser.add_argument("--context", "-c", default="", help="Interview focus or angle")
    parser.add_argument("--pro", action="store_true", help="Use Pro limits (local mode only)")
    parser.add_argument("--server", help="Stream from a running API instead of running locally")
    parser.add_argument("--token", help="Bearer token for --server")
    parser.add_argument("--questions", "-n", type=int, default=0, help="Generate N questions")
    parser.add_argument("--interviewer", default="Host", help="Interviewer name for questions")
    parser.add_argument("--style", default="", help="Interviewer style for questions")

    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
