# -*- coding: utf-8 -*-
"""Load settings.yaml into typed dataclasses."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from practice_lld.completion.models import ModelEntry, Provider, ReasoningEffort

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).resolve().parent / "settings.yaml"
SETTINGS_PATH_ENV = "PRACTICE_LLD_SETTINGS"
DEFAULT_CORS_ORIGIN = "http://localhost:5173"


@dataclass
class ProviderSettings:
    provider: Provider
    base_url: str
    api_key_env: str
    timeout_sec: float = 120.0
    release_delay_sec: float = 0.0
    api_key: str = field(default="", repr=False)


@dataclass
class QuestionSettings:
    schema_name: str = "lld_question"
    temperature: float = 0.9
    default_reasoning_effort: ReasoningEffort = ReasoningEffort.MEDIUM
    fallback_provider: Provider = Provider.GROQ
    fallback_models: List[str] = field(default_factory=list)


@dataclass
class DiagnosticsSettings:
    provider: Provider = Provider.OPENROUTER_RESPONSES
    model: str = "openai/o4-mini"


@dataclass
class Settings:
    providers: Dict[Provider, ProviderSettings]
    lld_question: QuestionSettings
    comparison_models: List[ModelEntry]
    model_capabilities: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    diagnostics: DiagnosticsSettings = field(default_factory=DiagnosticsSettings)
    cors_origins: List[str] = field(default_factory=list)


def _parse_providers(raw: Dict[str, Any]) -> Dict[Provider, ProviderSettings]:
    providers: Dict[Provider, ProviderSettings] = {}
    for name, provider_raw in (raw or {}).items():
        provider = Provider(name)
        api_key_env = str(provider_raw["api_key_env"])
        api_key = os.environ.get(api_key_env, "").strip()
        if api_key:
            logger.info("Provider available: %s", provider.value)
        else:
            logger.warning(
                "Provider %s has no API key; set %s in the environment or .env",
                provider.value,
                api_key_env,
            )
        providers[provider] = ProviderSettings(
            provider=provider,
            base_url=str(provider_raw["base_url"]),
            api_key_env=api_key_env,
            timeout_sec=float(provider_raw.get("timeout_sec", 120)),
            release_delay_sec=float(provider_raw.get("release_delay_sec", 0) or 0),
            api_key=api_key,
        )
    return providers


def _parse_question_settings(raw: Dict[str, Any]) -> QuestionSettings:
    raw = raw or {}
    return QuestionSettings(
        schema_name=str(raw.get("schema_name", "lld_question")),
        temperature=float(raw.get("temperature", 0.9)),
        default_reasoning_effort=ReasoningEffort(raw.get("default_reasoning_effort", "Medium")),
        fallback_provider=Provider(raw.get("fallback_provider", "Groq")),
        fallback_models=[str(model) for model in raw.get("fallback_models") or []],
    )


def _parse_catalog(raw: Dict[str, Any]) -> List[ModelEntry]:
    entries = [
        ModelEntry(model_id=str(item["model_id"]), provider=Provider(item["provider"]))
        for item in (raw or {}).get("models") or []
    ]
    if len({entry.display_name for entry in entries}) < 2:
        raise ValueError("The comparison catalog needs at least two distinct models.")
    return entries


def _parse_diagnostics(raw: Dict[str, Any]) -> DiagnosticsSettings:
    defaults = DiagnosticsSettings()
    raw = raw or {}
    return DiagnosticsSettings(
        provider=Provider(raw.get("provider", defaults.provider.value)),
        model=str(raw.get("model", defaults.model)),
    )


def get_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGIN)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings(settings_path: Optional[Union[str, Path]] = None) -> Settings:
    """Load and validate configuration.

    Raises FileNotFoundError if the settings file is missing. Missing API
    keys are logged, not raised.
    """

    if settings_path is None:
        env_path = os.getenv(SETTINGS_PATH_ENV)
        settings_path = Path(env_path) if env_path else _SETTINGS_PATH
    settings_path = Path(settings_path)

    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    settings = Settings(
        providers=_parse_providers(raw.get("providers")),
        lld_question=_parse_question_settings(raw.get("lld_question")),
        comparison_models=_parse_catalog(raw.get("comparison")),
        model_capabilities={
            str(model): dict(values or {})
            for model, values in (raw.get("model_capabilities") or {}).items()
        },
        diagnostics=_parse_diagnostics(raw.get("diagnostics")),
        cors_origins=get_cors_origins(),
    )

    needed = {entry.provider for entry in settings.comparison_models}
    needed.add(settings.lld_question.fallback_provider)
    if raw.get("diagnostics"):
        needed.add(settings.diagnostics.provider)
    missing = needed - set(settings.providers)
    if missing:
        raise ValueError(
            "No provider settings for: " + ", ".join(sorted(item.value for item in missing))
        )
    return settings


__all__ = [
    "DiagnosticsSettings",
    "ProviderSettings",
    "QuestionSettings",
    "Settings",
    "get_cors_origins",
    "load_settings",
]
