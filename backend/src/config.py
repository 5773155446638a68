"""Configuration for the LLM Council."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load local env files if present (never commit these).
# - `.env.local` is convenient for local dev (Vite also loads it automatically).
# - `.env` is the default for docker-compose variable substitution.
load_dotenv(dotenv_path=".env.local", override=False)
load_dotenv(dotenv_path=".env", override=False)


def _parse_csv_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    items = [v.strip() for v in value.split(",")]
    items = [v for v in items if v]
    return items or None


def _optional_float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


# Environment name (used for warnings/behavior toggles)
ENV = os.getenv("ENV", "development")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# OpenRouter API key
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")

# OpenRouter API endpoint
OPENROUTER_API_URL = os.getenv("OPENROUTER_API_URL", "https://openrouter.ai/api/v1/chat/completions")

# Council members - list of OpenRouter model identifiers
COUNCIL_MODELS = _parse_csv_list(os.getenv("COUNCIL_MODELS")) or [
    "openai/gpt-5.1",
    "google/gemini-3-pro-preview",
    "anthropic/claude-sonnet-4.5",
    "x-ai/grok-4",
]

# Chairman model - synthesizes final response
CHAIRMAN_MODEL = os.getenv("CHAIRMAN_MODEL", "google/gemini-3-pro-preview")

# Cheap model used for conversation titles
TITLE_MODEL = os.getenv("TITLE_MODEL", "google/gemini-2.5-flash")

# Per-model round trip limit, applied to every invocation regardless of council size.
OPENROUTER_TIMEOUT_SECONDS = float(os.getenv("OPENROUTER_TIMEOUT_SECONDS", "120.0"))
TITLE_TIMEOUT_SECONDS = float(os.getenv("TITLE_TIMEOUT_SECONDS", "30.0"))
OPENROUTER_MAX_CONCURRENCY = int(os.getenv("OPENROUTER_MAX_CONCURRENCY", "6"))

# Stage-2 labels run "Response A" through "Response Z".
MAX_COUNCIL_SIZE = 26

# Optional deadline for a whole council run (all three stages). Unset means no deadline.
COUNCIL_RUN_TIMEOUT_SECONDS = _optional_float(os.getenv("COUNCIL_RUN_TIMEOUT_SECONDS"))

# HTTP layer
CORS_ALLOWED_ORIGINS = _parse_csv_list(os.getenv("CORS_ALLOWED_ORIGINS"))
MAX_REQUEST_BODY_BYTES = int(os.getenv("MAX_REQUEST_BODY_BYTES", str(1 << 20)))


def cors_allow_origins() -> list[str]:
    if CORS_ALLOWED_ORIGINS:
        return list(CORS_ALLOWED_ORIGINS)
    # Local dev frontends (Vite, CRA).
    return ["http://localhost:5173", "http://localhost:3000"]


# Data directory for conversation storage
DATA_DIR = os.getenv("DATA_DIR", "data/conversations")


@dataclass(frozen=True)
class CouncilConfig:
    """Everything a council run needs to know, passed explicitly to the orchestrator."""

    council_models: tuple[str, ...] = field(default_factory=lambda: tuple(COUNCIL_MODELS))
    chairman_model: str = CHAIRMAN_MODEL
    title_model: str = TITLE_MODEL
    model_timeout_seconds: float = OPENROUTER_TIMEOUT_SECONDS
    title_timeout_seconds: float = TITLE_TIMEOUT_SECONDS
    run_timeout_seconds: float | None = COUNCIL_RUN_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.council_models:
            raise ValueError("council_models must not be empty")
        if len(set(self.council_models)) > MAX_COUNCIL_SIZE:
            raise ValueError(f"council_models supports at most {MAX_COUNCIL_SIZE} distinct models")
        if not self.chairman_model:
            raise ValueError("chairman_model must be set")
        # Accept lists from callers but keep the stored value immutable.
        object.__setattr__(self, "council_models", tuple(self.council_models))

    @classmethod
    def from_env(cls) -> "CouncilConfig":
        return cls(
            council_models=tuple(COUNCIL_MODELS),
            chairman_model=CHAIRMAN_MODEL,
            title_model=TITLE_MODEL,
            model_timeout_seconds=OPENROUTER_TIMEOUT_SECONDS,
            title_timeout_seconds=TITLE_TIMEOUT_SECONDS,
            run_timeout_seconds=COUNCIL_RUN_TIMEOUT_SECONDS,
        )
