"""LLM configuration management."""

import os
from dataclasses import dataclass, field
from typing import Any

from .exceptions import LLMValidationError

DEFAULT_PROVIDER = "groq"

# Per-provider defaults. Keys are the provider strings accepted everywhere a
# provider can be selected (env, API options, CLI).
PROVIDER_DEFAULTS: dict[str, dict[str, str | None]] = {
    "groq": {
        "model_name": "llama3-70b-8192",
        "api_key_env": "GROQ_API_KEY",
        "api_base_env": "GROQ_API_BASE_URL",
        "api_base": "https://api.groq.com/openai/v1",
    },
    "sambanova": {
        "model_name": "Meta-Llama-3.3-70B-Instruct",
        "api_key_env": "SAMBANOVA_API_KEY",
        "api_base_env": "SAMBANOVA_API_BASE_URL",
        "api_base": "https://api.sambanova.ai/v1",
    },
    "openai": {
        "model_name": "gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
        "api_base_env": "OPENAI_API_BASE",
        "api_base": None,
    },
    "anthropic": {
        "model_name": "claude-3-5-sonnet-20241022",
        "api_key_env": "ANTHROPIC_API_KEY",
        "api_base_env": None,
        "api_base": None,
    },
}

SUPPORTED_PROVIDERS = tuple(PROVIDER_DEFAULTS)


def normalize_provider(provider: str | None) -> str:
    """
    Normalize a provider key and check it is supported.

    Raises:
        LLMValidationError: If the provider is unknown
    """
    key = (provider or "").strip().lower()
    if key not in PROVIDER_DEFAULTS:
        raise LLMValidationError(
            f"Unsupported LLM provider: {provider!r} "
            f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
        )
    return key


@dataclass
class LLMConfig:
    """Configuration for LLM providers."""

    # Provider settings
    provider: str = DEFAULT_PROVIDER
    model_name: str = PROVIDER_DEFAULTS[DEFAULT_PROVIDER]["model_name"]
    api_key: str | None = None
    api_base: str | None = None

    # Generation parameters; extraction must be deterministic
    temperature: float = 0.0
    max_tokens: int | None = 4000
    top_p: float = 1.0

    # Transport
    timeout: float | None = 120.0
    max_retries: int = 2

    # Provider-specific settings
    provider_kwargs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_provider(cls, provider: str, **overrides: Any) -> "LLMConfig":
        """
        Build a configuration from a provider's defaults and its env credentials.

        Args:
            provider: Provider key (groq, sambanova, openai, anthropic)
            **overrides: Field values that win over defaults and environment

        Returns:
            LLMConfig instance

        Raises:
            LLMValidationError: If the provider is unknown
        """
        key = normalize_provider(provider)
        defaults = PROVIDER_DEFAULTS[key]

        api_base_env = defaults["api_base_env"]
        config = cls(
            provider=key,
            model_name=defaults["model_name"],
            api_key=os.getenv(defaults["api_key_env"]),
            api_base=(os.getenv(api_base_env) if api_base_env else None)
            or defaults["api_base"],
        )
        for name, value in overrides.items():
            setattr(config, name, value)
        return config

    @classmethod
    def from_environment(cls, provider: str | None = None) -> "LLMConfig":
        """
        Create LLM configuration from environment variables.

        Args:
            provider: Override the provider from environment

        Returns:
            LLMConfig instance
        """
        config = cls.for_provider(provider or os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER))

        # Generic overrides apply to whichever provider was chosen
        if model_name := os.getenv("LLM_MODEL_NAME"):
            config.model_name = model_name
        if api_key := os.getenv("LLM_API_KEY"):
            config.api_key = api_key
        if api_base := os.getenv("LLM_API_BASE"):
            config.api_base = api_base

        if temp := os.getenv("LLM_TEMPERATURE"):
            config.temperature = float(temp)
        if max_tokens := os.getenv("LLM_MAX_TOKENS"):
            config.max_tokens = int(max_tokens)
        if timeout := os.getenv("LLM_TIMEOUT"):
            config.timeout = float(timeout)

        return config

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            LLMValidationError: If configuration is invalid
        """
        self.provider = normalize_provider(self.provider)

        if not self.model_name:
            raise LLMValidationError("Model name must be specified")

        if not self.api_key:
            key_env = PROVIDER_DEFAULTS[self.provider]["api_key_env"]
            raise LLMValidationError(
                f"API key is required for {self.provider} provider (set {key_env})"
            )

        if not 0 <= self.temperature <= 2:
            raise LLMValidationError("Temperature must be between 0 and 2")

        if self.max_tokens is not None and self.max_tokens <= 0:
            raise LLMValidationError("Max tokens must be positive")

        if not 0 <= self.top_p <= 1:
            raise LLMValidationError("Top-p must be between 0 and 1")
