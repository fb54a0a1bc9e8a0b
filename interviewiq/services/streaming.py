from __future__ import annotations

from interviewiq.models.events import EventType, ProgressStatus, SSEEvent, Stage
from interviewiq.models.research import ResearchReport


def progress(stage: Stage, status: ProgressStatus, message: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.PROGRESS,
        data={"stage": stage.value, "status": status.value, "message": message},
    )


def active(stage: Stage, message: str) -> SSEEvent:
    return progress(stage, ProgressStatus.ACTIVE, message)


def done(stage: Stage, message: str) -> SSEEvent:
    return progress(stage, ProgressStatus.DONE, message)


def failed(stage: Stage, message: str) -> SSEEvent:
    return progress(stage, ProgressStatus.ERROR, message)


def result(report: ResearchReport) -> SSEEvent:
    return SSEEvent(event=EventType.RESULT, data={"data": report.to_wire()})


def error(message: str, *, kind: str | None = None) -> SSEEvent:
    data: dict[str, str] = {"message": message}
    if kind:
        data["kind"] = kind
    return SSEEvent(event=EventType.ERROR, data=data)
