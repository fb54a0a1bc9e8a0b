from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from interviewiq.api.routes import models, questions, research
from interviewiq.config import settings
from interviewiq.errors import ConfigurationError, InterviewIQError, QuotaExhausted
from interviewiq.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_service.log_event(
        event_type="startup",
        message="InterviewIQ API ready",
        cors_origins=settings.cors_origin_list,
        question_models=settings.question_model_list,
    )
    yield
    logger.info("InterviewIQ API shutting down")


def create_app() -> FastAPI:
    application = FastAPI(
        title="InterviewIQ",
        description="Guest research and interview question generation powered by Gemini",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    for module in (research, questions, models):
        application.include_router(module.router)

    @application.exception_handler(InterviewIQError)
    async def interviewiq_error(request: Request, exc: InterviewIQError) -> JSONResponse:
        if isinstance(exc, ConfigurationError):
            status_code = 400
        elif isinstance(exc, QuotaExhausted) or exc.retryable:
            status_code = 429
        else:
            status_code = 502
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
        return JSONResponse(status_code=status_code, content={"error": exc.message})

    @application.get("/api/health")
    async def health():
        return {"status": "ok", "service": "interviewiq"}

    return application


app = create_app()


def serve() -> None:
    import uvicorn

    uvicorn.run("interviewiq.main:app", host=settings.host, port=settings.port)
