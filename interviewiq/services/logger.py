"""Loguru sinks and the structured log lines the research pipeline writes.

Every model call goes through ``log_llm_call`` and every stage transition of a
research run through ``log_research_step``, so a single run can be followed in
the daily file by grepping its ``run_id``.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from interviewiq.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {extra} - {message}"

# Third-party loggers that flood the console at INFO during a run.
NOISY_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "google_genai",
    "google_genai.models",
    "sse_starlette.sse",
    "asyncio",
)


def configure(log_dir: Optional[str] = None) -> Path:
    """(Re)install the console and file sinks. Returns the log directory."""
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=settings.app_log_level.upper(),
        colorize=True,
    )
    logger.add(
        directory / "interviewiq_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention=f"{settings.log_retention_days} days",
        compression="zip",
        enqueue=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(settings.noisy_log_level.upper())
    return directory


def log_llm_call(
    model: str,
    caller: str,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    bound = logger.bind(model=model, caller=caller, duration_ms=duration_ms)
    if error:
        bound.warning(f"Gemini call {caller} on {model} failed after {duration_ms}ms: {error}")
    else:
        bound.info(f"Gemini call {caller} on {model} {status} in {duration_ms}ms")


def log_research_step(
    run_id: str,
    step_type: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    """One line per stage transition; ``data`` carries the stage message or error."""
    detail = ""
    if data:
        detail = " " + ", ".join(f"{key}={value}" for key, value in data.items())
    logger.bind(run_id=run_id, stage=step_type).info(f"[{run_id}] {step_type} -> {status}{detail}")


def log_event(event_type: str, message: str, **kwargs: Any) -> None:
    logger.bind(event_type=event_type, **kwargs).info(f"{event_type}: {message}")


configure()
