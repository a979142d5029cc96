"""LangChain implementation of LLM interface."""

import logging
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from ..config import LLMConfig
from ..exceptions import (
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTokenLimitError,
    LLMValidationError,
)
from ..factory import create_chat_model
from ..interfaces.llm_interface import LLMInterface
from ..utils import estimate_token_count

logger = logging.getLogger(__name__)


def _message_text(content: Any) -> str:
    """Flatten message content, which may be a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


class LangChainProvider(LLMInterface):
    """LangChain implementation of LLM interface."""

    def __init__(self, config: LLMConfig | None = None):
        """
        Initialize the LangChain provider.

        Args:
            config: LLM configuration. If None, will load from environment.

        Raises:
            LLMValidationError: If the configuration is invalid
        """
        self.config = config or LLMConfig.from_environment()
        self.config.validate()
        self._chat_model = None

    @property
    def provider_name(self) -> str:
        return self.config.provider

    @property
    def chat_model(self):
        """Lazy-load the chat model instance."""
        if self._chat_model is None:
            self._chat_model = create_chat_model(self.config)
        return self._chat_model

    async def generate_completion(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate a completion using LangChain."""
        if not user_content or not user_content.strip():
            raise LLMValidationError("User content must not be empty")

        lc_messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_content),
        ]
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.chat_model.ainvoke(lc_messages, **kwargs)
        except LLMError:
            raise
        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            message = str(e).lower()
            if "rate limit" in message or "429" in message:
                raise LLMRateLimitError(f"Rate limit exceeded: {e}") from e
            elif "token" in message and "limit" in message:
                raise LLMTokenLimitError(f"Token limit exceeded: {e}") from e
            else:
                raise LLMError(f"Generation failed: {e}") from e

        content = _message_text(getattr(response, "content", None))
        if not content.strip():
            raise LLMResponseError("Empty response from LLM")

        return content

    def count_tokens(self, text: str) -> int:
        """Count tokens using the model's tokenizer if available, otherwise estimate."""
        try:
            return self.chat_model.get_num_tokens(text)
        except Exception:
            return estimate_token_count(text)
