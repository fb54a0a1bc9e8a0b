"""Client-side view of a research stream: frame decoding and the progress board."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator

from loguru import logger

from interviewiq.models.events import ProgressStatus, Stage

SENTINEL_STAGES = {Stage.START.value, Stage.COMPLETE.value}

STATUS_ICONS = {
    ProgressStatus.ACTIVE.value: "~",
    ProgressStatus.DONE.value: "+",
    ProgressStatus.ERROR.value: "!",
}


class SSEFrameDecoder:
    """Incremental decoder for ``data: {json}`` frames separated by blank lines.

    Chunks may split a frame anywhere; the incomplete tail is kept until the
    next chunk completes it.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        # CRLF pairs can straddle chunks, so normalize the whole buffer.
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")
        parts = self._buffer.split("\n\n")
        self._buffer = parts.pop()
        return [payload for part in parts for payload in self._parse_frame(part)]

    def flush(self) -> list[dict[str, Any]]:
        tail, self._buffer = self._buffer, ""
        return list(self._parse_frame(tail))

    @staticmethod
    def _parse_frame(frame: str) -> Iterator[dict[str, Any]]:
        data_lines = [
            line[5:].lstrip() for line in frame.split("\n") if line.startswith("data:")
        ]
        if not data_lines:
            return
        raw = "\n".join(data_lines)
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed stream frame: {raw[:120]}")
            return
        if isinstance(payload, dict):
            yield payload


@dataclass
class BoardRow:
    stage: str
    status: str
    message: str


@dataclass
class ProgressBoard:
    """Append-or-update progress display keyed by stage name."""

    title: str = "Researching..."
    rows: list[BoardRow] = field(default_factory=list)
    _index: dict[str, BoardRow] = field(default_factory=dict, repr=False)

    def apply(self, payload: dict[str, Any]) -> None:
        stage = str(payload.get("stage", ""))
        status = str(payload.get("status", ProgressStatus.ACTIVE.value))
        message = str(payload.get("message", ""))
        if stage in SENTINEL_STAGES:
            self.title = message
            if stage == Stage.COMPLETE.value:
                self.title = "Research complete!"
            return
        row = self._index.get(stage)
        if row is None:
            row = BoardRow(stage=stage, status=status, message=message)
            self.rows.append(row)
            self._index[stage] = row
            return
        row.status = status
        row.message = message

    def render(self) -> str:
        lines = [self.title]
        for row in self.rows:
            icon = STATUS_ICONS.get(row.status, "?")
            lines.append(f"  [{icon}] {row.message}")
        return "\n".join(lines)
