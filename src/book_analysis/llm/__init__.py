"""LLM clients and configuration for the book analysis pipeline."""

from . import utils
from .config import PROVIDER_DEFAULTS, SUPPORTED_PROVIDERS, LLMConfig
from .exceptions import (
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTokenLimitError,
    LLMValidationError,
)
from .factory import create_chat_model, create_llm_provider
from .interfaces.llm_interface import LLMInterface

__all__ = [
    "LLMConfig",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMTokenLimitError",
    "LLMValidationError",
    "LLMResponseError",
    "LLMInterface",
    "PROVIDER_DEFAULTS",
    "SUPPORTED_PROVIDERS",
    "utils",
    "create_chat_model",
    "create_llm_provider",
]
