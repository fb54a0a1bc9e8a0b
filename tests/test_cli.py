from __future__ import annotations

from unittest.mock import patch

import pytest

import main
from interviewiq.models.events import Stage
from interviewiq.models.research import ResearchReport
from interviewiq.services import streaming
from interviewiq.services.progress_board import ProgressBoard


def test_handle_payload_updates_board_and_returns_report(capsys):
    board = ProgressBoard()

    assert main.handle_payload(board, {"type": "progress", "stage": "name_check", "status": "done", "message": "Confirmed: Jane Doe"}) is None
    report = main.handle_payload(board, {"type": "result", "data": {"subjectName": "Jane Doe"}})

    assert report == {"subjectName": "Jane Doe"}
    assert board.rows[0].message == "Confirmed: Jane Doe"
    assert "[+] Confirmed: Jane Doe" in capsys.readouterr().out


def test_handle_payload_prints_errors(capsys):
    assert main.handle_payload(ProgressBoard(), {"type": "error", "message": "QUOTA_EXHAUSTED: later"}) is None
    assert "[!] Error: QUOTA_EXHAUSTED: later" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_local_returns_report():
    class FakeOrchestrator:
        async def research(self, request):
            yield streaming.done(Stage.NAME_CHECK, "Confirmed: Jane Doe")
            yield streaming.result(ResearchReport(subject_name="Jane Doe", original_query="Jane Doe"))

    with patch.object(main, "ResearchOrchestrator", FakeOrchestrator):
        report = await main.run_local("Jane Doe", "", pro=False)

    assert report["subjectName"] == "Jane Doe"
    assert report["totalVideosFound"] == 0
