"""LLM provider implementations."""

from .langchain_provider import LangChainProvider
from .mock_provider import MockLLMProvider

__all__ = ["MockLLMProvider", "LangChainProvider"]
