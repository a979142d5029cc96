"""Scripted LLM provider for tests and offline runs."""

from collections.abc import Callable
from typing import Any

from ..interfaces.llm_interface import LLMInterface
from ..utils import EMPTY_CHUNK_RESULT, estimate_token_count

Response = str | Exception | Callable[[str, str], str]


class MockLLMProvider(LLMInterface):
    """
    Replays a queue of scripted responses.

    Each queued item is returned in order; an exception instance is raised
    instead, and a callable is called with ``(system_prompt, user_content)``.
    Once the queue is empty ``default_response`` is returned. Every call is
    recorded in ``calls``.
    """

    def __init__(
        self,
        responses: list[Response] | None = None,
        default_response: str = EMPTY_CHUNK_RESULT,
        provider_name: str = "mock",
    ):
        self.responses = list(responses or [])
        self.default_response = default_response
        self._provider_name = provider_name
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return self._provider_name

    async def generate_completion(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_content": user_content,
                "max_tokens": max_tokens,
            }
        )
        response = self.responses.pop(0) if self.responses else self.default_response

        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(system_prompt, user_content)
        return response

    def count_tokens(self, text: str) -> int:
        return estimate_token_count(text)
