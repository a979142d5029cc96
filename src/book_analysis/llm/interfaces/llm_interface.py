"""Abstract interface for LLM operations."""

from abc import ABC, abstractmethod
from typing import Any


class LLMInterface(ABC):
    """Abstract interface for the completion client used by the pipeline."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider key stamped into result metadata."""
        pass

    @abstractmethod
    async def generate_completion(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """
        Run one completion with a system prompt and a single user message.

        Args:
            system_prompt: Instructions for the model
            user_content: The user message (a text chunk or serialized state)
            max_tokens: Output token budget for this call
            **kwargs: Additional provider-specific parameters

        Returns:
            The raw text of the model's reply

        Raises:
            LLMError: If the call fails
        """
        pass

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """
        Count tokens in text.

        Args:
            text: Text to count tokens for

        Returns:
            Number of tokens
        """
        pass
