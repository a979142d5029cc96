"""Configuration for the chunked analysis pipeline."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """
    Tunables for segmentation, context building and model calls.

    Every field can be overridden from the environment with the
    ``ANALYSIS_`` prefix, e.g. ``ANALYSIS_CHUNK_SIZE=8000``.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    # Segmentation
    chunk_size: int = 6000  # Max characters per chunk
    lookback_window: int = 100  # Upper bound on the boundary search window

    # Pacing between chunk calls (milliseconds)
    delay_between_chunks_ms: int = 1000

    # Context summary passed to each chunk after the first
    significant_mention_threshold: int = 3
    max_significant_characters: int = 15
    significant_strength_threshold: int = 2
    max_significant_relationships: int = 20
    description_preview_chars: int = 200
    evidence_preview_chars: int = 150

    # Output token budgets per call type
    chunk_max_tokens: int = 4000
    refinement_max_tokens: int = 8000
    inference_max_tokens: int = 4000

    # Post-merge model passes
    enable_refinement: bool = True
    enable_inference: bool = True

    default_provider: str = "groq"


@lru_cache
def get_analysis_settings() -> AnalysisSettings:
    """Get the process-wide settings instance (cached)."""
    return AnalysisSettings()
