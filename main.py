"""Run the FastAPI app for the hotel AI assistant."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import FastAPI

from src.hotel_assistant import (
    HOTEL_TOOLS,
    ChatOptions,
    ChatOrchestrator,
    ContextBuilder,
    HotelToolbox,
    ToolExecutor,
)
from src.hotel_assistant.config import AssistantSettings, ensure_dirs
from src.hotel_assistant.system_prompt_loader import load_system_prompt
from src.hotel_data import HotelStore
from src.llm_core import LLMProvider, build_provider
from src.report_jobs import (
    REPORT_GENERATE_EVENT,
    DisabledMailer,
    JobRunner,
    JobStore,
    Mailer,
    ReportJobClient,
    ReportWorkflow,
    RetryPolicy,
    SMTPMailer,
    SMTPSettings,
)
from src.routers import chat_router, reports_router
from src.routers.auth import AdminAuthenticator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _default_mailer() -> Mailer:
    if not os.getenv("SMTP_HOST"):
        logger.warning("SMTP_HOST not set; report emails will fail until it is configured")
        return DisabledMailer()
    return SMTPMailer(SMTPSettings.from_env())


def create_app(
    settings: AssistantSettings | None = None,
    *,
    provider: LLMProvider | None = None,
    hotel_store: HotelStore | None = None,
    job_store: JobStore | None = None,
    mailer: Mailer | None = None,
    retry_policy: RetryPolicy | None = None,
    clock: Callable[[], datetime] = datetime.now,
    resume_jobs: bool = True,
) -> FastAPI:
    """Wire stores, provider, tools and job runner into a FastAPI app.

    Every collaborator can be injected; anything omitted is built from settings.
    """
    settings = settings or AssistantSettings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    if hotel_store is None or job_store is None:
        ensure_dirs()
    hotel_store = hotel_store or HotelStore(settings.hotel_db_path)
    job_store = job_store or JobStore(settings.jobs_db_path)

    runner = JobRunner(job_store, retry_policy)
    runner.register(
        REPORT_GENERATE_EVENT,
        ReportWorkflow(hotel_store, job_store, mailer or _default_mailer(), settings.hotel_name, clock),
    )
    report_jobs = ReportJobClient(runner)

    toolbox = HotelToolbox(hotel_store, report_jobs, clock)
    executor = ToolExecutor(HOTEL_TOOLS, toolbox.handlers())
    orchestrator = ChatOrchestrator(
        provider or build_provider(settings.model),
        executor,
        ContextBuilder(hotel_store, clock),
        ChatOptions.from_settings(settings, system_prompt=load_system_prompt(settings.hotel_name) or None),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if resume_jobs:
            await report_jobs.resume_incomplete()
        yield
        await report_jobs.shutdown()

    app = FastAPI(title="Hotel AI Assistant", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.authenticator = AdminAuthenticator(settings.admin_api_token)
    app.state.orchestrator = orchestrator
    app.state.report_jobs = report_jobs
    app.state.hotel_store = hotel_store
    app.include_router(chat_router)
    app.include_router(reports_router)
    return app


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
