# -*- coding: utf-8 -*-
"""
Newsletter parser configuration using Pydantic BaseSettings.
"""
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration loaded from environment variables.
    Pydantic's BaseSettings provides automatic validation, type casting,
    and reading from .env files.
    """

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    # Input bounding (regex backtracking is the main latency risk on huge inputs)
    MAX_INPUT_LENGTH: int = 2_000_000

    # ==========================================================================
    # Rule Engine
    # ==========================================================================

    # Rule ids to skip. Mandatory rules (script/style, tracking, handlers,
    # dangerous URLs, ...) ignore this list.
    DISABLED_RULES: List[str] = []

    # Upper bound for rules that re-apply until stable (nested layout tables)
    RULE_MAX_PASSES: int = 20

    # Upper bound for the empty-container shrink pass
    SHRINK_MAX_PASSES: int = 50

    # Upper bound for whole cleaning rounds; a round re-runs when the previous
    # one exposed new matches (e.g. a comment splitting an unsubscribe link)
    CLEAN_MAX_ROUNDS: int = 5

    # ==========================================================================
    # Incremental Parser
    # ==========================================================================

    PIPELINE_VERSION: str = "3.0.0-incremental"
    FALLBACK_VERSION: str = "3.0.0-fallback"

    # Length of input/output previews stored on each processing step
    STEP_PREVIEW_LENGTH: int = 200

    # Structure recovery heuristics (characters per line)
    HEADING_MIN_LENGTH: int = 3
    HEADING_MAX_LENGTH: int = 80
    PARAGRAPH_MIN_LENGTH: int = 40

    # ==========================================================================
    # Footnote links
    # ==========================================================================

    FOOTNOTE_MAX_CONTEXT_LENGTH: int = 30
    FOOTNOTE_REFERENCE_PREVIEW_LENGTH: int = 60
    FOOTNOTE_CLEAN_TRACKING_PARAMS: bool = True
    # Append the footnote stylesheet as an inline <style> block
    FOOTNOTE_INCLUDE_CSS: bool = False

    # Exact query parameter names treated as tracking (utm_* is always stripped)
    TRACKING_QUERY_PARAMS: List[str] = [
        "fbclid",
        "gclid",
        "_ga",
        "ref",
        "mc_cid",
        "mc_eid",
        "igshid",
    ]

    # ==========================================================================
    # Content helpers
    # ==========================================================================

    PREVIEW_TEXT_LENGTH: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global configuration instance
settings = Settings()
