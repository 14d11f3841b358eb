# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# All tunables of the simulator live here: LLM provider selection, document
# upload handling, relevance scoring thresholds, context budgets, the answer
# length cap and the session pacing / turn limit.
#
# Values load in this priority order (highest first):
#   1. Environment variables (e.g., `MAX_TURNS=3`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from app.config import settings
#   print(settings.max_turns)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults reproduce the demo behaviour: one question/answer pair per
    session, full-document context, 600-character answers.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "Shareholder Meeting Q&A Simulator"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: list[str] = ["*"]

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # Two provider families are supported:
    #   - "anthropic": Claude via native Anthropic SDK
    #   - "openai_compatible": any OpenAI-compatible API (OpenAI, Azure
    #     OpenAI proxies, DeepSeek, Qwen...)
    #
    # When no key is configured, or generation_enabled is false, the
    # Questioner and Responder run on their deterministic fallbacks only.
    # -------------------------------------------------------------------------
    generation_enabled: bool = True
    llm_provider: Literal["anthropic", "openai_compatible"] = "anthropic"
    llm_base_url: str | None = None
    llm_api_key: str | None = None
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    llm_model: str = "claude-sonnet-4-6"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 600
    question_temperature: float = 0.7  # Shareholders may be more creative
    question_max_tokens: int = 200

    # -------------------------------------------------------------------------
    # Document Upload
    # -------------------------------------------------------------------------
    upload_dir: str = "data/uploads"
    allowed_extensions: tuple[str, ...] = (".pdf", ".docx", ".txt")
    max_upload_bytes: int = 10 * 1024 * 1024

    # -------------------------------------------------------------------------
    # Relevance Scoring
    # -------------------------------------------------------------------------
    # garbled_ratio_threshold: sentences whose share of U+FFFD replacement
    # characters exceeds this are treated as extraction noise and dropped.
    # -------------------------------------------------------------------------
    relevance_limit: int = 5
    min_sentence_length: int = 10
    garbled_ratio_threshold: float = 0.15
    topic_count: int = 5

    # -------------------------------------------------------------------------
    # Context Budgets (characters)
    # -------------------------------------------------------------------------
    # context_mode selects what the Responder hands to the LLM:
    #   - "full":     every document, whole, under full_context_max_chars
    #   - "snippets": keyword-scored sentences under snippet_context_max_chars
    # -------------------------------------------------------------------------
    context_mode: Literal["full", "snippets"] = "full"
    full_context_max_chars: int = 50_000
    snippet_context_max_chars: int = 8_000
    question_context_chars: int = 2_000  # Per document, for the Questioner
    conversation_max_chars: int = 1_000
    min_useful_chars: int = 100

    # -------------------------------------------------------------------------
    # Answer Length Cap
    # -------------------------------------------------------------------------
    answer_max_chars: int = Field(default=600, gt=1)
    truncate_window_chars: int = Field(default=150, ge=0)

    # -------------------------------------------------------------------------
    # Session Pacing & Turn Limit
    # -------------------------------------------------------------------------
    # max_turns: question/answer pairs per session. The demo default is 1.
    # The delays model a live back-and-forth for polling clients; set them
    # to 0 for immediate sequential generation.
    # random_seed: seeds fallback question/answer selection; None = random.
    # -------------------------------------------------------------------------
    max_turns: int = Field(default=1, ge=1)
    answer_delay_seconds: float = Field(default=2.0, ge=0)
    next_turn_delay_seconds: float = Field(default=3.0, ge=0)
    random_seed: int | None = None

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, override with FastAPI's dependency_overrides or pass a
    Settings object straight into the components:
        SessionRegistry(settings=Settings(answer_delay_seconds=0))
    """
    return Settings()


settings = get_settings()
