from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    PROGRESS = "progress"
    RESULT = "result"
    ERROR = "error"


class Stage(str, Enum):
    START = "start"
    NAME_CHECK = "name_check"
    MEDIA_SEARCH = "media_search"
    TRANSCRIPT_FETCH = "transcript_fetch"
    MODEL_WATCH = "model_watch"
    CORPUS_SYNTHESIS = "corpus_synthesis"
    WEB_AND_ENCYCLOPEDIA = "web_and_encyclopedia"
    COMPILE = "compile"
    COMPLETE = "complete"

    @property
    def is_sentinel(self) -> bool:
        return self in (Stage.START, Stage.COMPLETE)


class ProgressStatus(str, Enum):
    ACTIVE = "active"
    DONE = "done"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event in (EventType.RESULT, EventType.ERROR)

    @property
    def stage(self) -> str | None:
        return self.data.get("stage")

    def payload(self) -> dict[str, Any]:
        return {"type": self.event.value, **self.data}

    def format(self) -> str:
        return f"data: {json.dumps(self.payload())}\n\n"
