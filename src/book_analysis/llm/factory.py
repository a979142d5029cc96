"""Factory for creating LangChain chat models and providers from LLMConfig.

Every provider that speaks the OpenAI wire format (groq, sambanova, openai)
goes through ``ChatOpenAI`` with its own base URL; anthropic goes through
``ChatAnthropic``.
"""

import logging

from book_analysis.llm.config import LLMConfig
from book_analysis.llm.exceptions import (
    LLMConnectionError,
    LLMError,
    LLMValidationError,
)

logger = logging.getLogger(__name__)

OPENAI_COMPATIBLE_PROVIDERS = frozenset({"groq", "sambanova", "openai"})


def create_chat_model(config: LLMConfig | None = None):
    """
    Create a LangChain chat model from configuration.

    Args:
        config: LLM configuration. If None, loads from environment.

    Returns:
        LangChain chat model instance (ChatOpenAI or ChatAnthropic)

    Raises:
        LLMValidationError: If provider is not supported
        LLMConnectionError: If required dependencies are missing

    Example:
        >>> from book_analysis.llm.factory import create_chat_model
        >>> from book_analysis.llm.config import LLMConfig
        >>>
        >>> llm = create_chat_model(LLMConfig.for_provider("sambanova"))
    """
    if config is None:
        config = LLMConfig.from_environment()

    try:
        if config.provider in OPENAI_COMPATIBLE_PROVIDERS:
            from langchain_openai import ChatOpenAI  # noqa: PLC0415

            return ChatOpenAI(
                model=config.model_name,
                api_key=config.api_key,
                base_url=config.api_base,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                top_p=config.top_p,
                timeout=config.timeout,
                max_retries=config.max_retries,
                **config.provider_kwargs,
            )

        elif config.provider == "anthropic":
            from langchain_anthropic import ChatAnthropic  # noqa: PLC0415

            return ChatAnthropic(
                model=config.model_name,
                api_key=config.api_key,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                top_p=config.top_p,
                timeout=config.timeout,
                max_retries=config.max_retries,
                **config.provider_kwargs,
            )

        else:
            raise LLMValidationError(f"Unsupported LLM provider: {config.provider}")

    except LLMError:
        raise
    except ImportError as e:
        raise LLMConnectionError(
            f"Missing dependency for {config.provider}: {e}"
        ) from e
    except Exception as e:
        raise LLMConnectionError(f"Failed to create chat model: {e}") from e


def create_llm_provider(config: LLMConfig | None = None):
    """
    Create the completion client used by the analysis services.

    The configuration is validated here, so an unknown provider or a missing
    credential fails before any network call is made.

    Args:
        config: LLM configuration. If None, loads from environment.

    Returns:
        A LangChainProvider instance
    """
    from book_analysis.llm.providers.langchain_provider import (  # noqa: PLC0415
        LangChainProvider,
    )

    provider = LangChainProvider(config)
    logger.info(
        f"Using {provider.config.provider} provider with model {provider.config.model_name}"
    )
    return provider
