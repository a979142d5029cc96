"""Errors raised by the completion clients."""


class LLMError(Exception):
    """Base class for completion failures."""
    pass


class LLMConnectionError(LLMError):
    """The chat model for the selected provider could not be built or reached."""
    pass


class LLMRateLimitError(LLMError):
    """The provider throttled the request (HTTP 429)."""
    pass


class LLMTokenLimitError(LLMError):
    """The chunk plus prompt, or the requested output, exceeded the model's window."""
    pass


class LLMValidationError(LLMError):
    """Unknown provider, missing credential or out-of-range generation setting."""
    pass


class LLMResponseError(LLMError):
    """The model answered with no text at all."""
    pass
