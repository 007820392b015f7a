# -*- coding: utf-8 -*-
"""FastAPI application: LLD question generation and model comparison."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Dict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from practice_lld import __version__
from practice_lld.api.dependencies import DiagnosticsTarget
from practice_lld.api.endpoints import (
    diagnostics_router,
    lld_question_router,
    model_comparison_router,
)
from practice_lld.completion import CompletionClient, Provider
from practice_lld.config import Settings, get_cors_origins, load_settings
from practice_lld.services import (
    InMemoryQuestionHistoryRepository,
    LldQuestionService,
    ModelComparisonService,
)
from practice_lld.utils.logging import configure_logging

load_dotenv()
configure_logging()

logger = logging.getLogger(__name__)


def build_clients(settings: Settings) -> Dict[Provider, CompletionClient]:
    """One client per provider, so calls to different providers run in parallel."""
    return {
        provider: CompletionClient(
            provider,
            provider_settings.base_url,
            provider_settings.api_key,
            timeout_sec=provider_settings.timeout_sec,
            release_delay_sec=provider_settings.release_delay_sec,
            capability_overrides=settings.model_capabilities,
        )
        for provider, provider_settings in settings.providers.items()
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    clients = build_clients(settings)
    question_service = LldQuestionService(clients, settings.lld_question)

    app.state.settings = settings
    app.state.clients = clients
    app.state.question_service = question_service
    app.state.comparison_service = ModelComparisonService(
        question_service, settings.comparison_models
    )
    app.state.history_repository = InMemoryQuestionHistoryRepository()
    app.state.diagnostics = DiagnosticsTarget(
        provider=settings.diagnostics.provider,
        model=settings.diagnostics.model,
        client=clients.get(settings.diagnostics.provider),
    )
    logger.info(
        "PracticeLLD started with providers: %s",
        ", ".join(provider.value for provider in clients),
    )
    try:
        yield
    finally:
        for client in clients.values():
            await client.aclose()
        logger.info("PracticeLLD stopped.")


app = FastAPI(title="PracticeLLD", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(lld_question_router)
app.include_router(model_comparison_router)
app.include_router(diagnostics_router)


@app.get("/")
async def root():
    return {"message": "PracticeLLD API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
