import pytest

from book_analysis.database.config import (
    DatabaseEnvironment,
    StoreBackend,
    WeaviateConfig,
    store_backend_from_environment,
)
from book_analysis.database.exceptions import ConfigurationError
from book_analysis.llm import LLMConfig, LLMValidationError
from book_analysis.llm.config import normalize_provider
from book_analysis.llm.providers import LangChainProvider


@pytest.fixture(autouse=True)
def clean_llm_env(monkeypatch):
    for name in (
        "LLM_PROVIDER",
        "LLM_MODEL_NAME",
        "LLM_API_KEY",
        "LLM_API_BASE",
        "LLM_TEMPERATURE",
        "LLM_MAX_TOKENS",
        "LLM_TIMEOUT",
        "GROQ_API_KEY",
        "GROQ_API_BASE_URL",
        "SAMBANOVA_API_KEY",
        "SAMBANOVA_API_BASE_URL",
        "ANALYSIS_STORE",
        "DB_ENVIRONMENT",
        "WEAVIATE_PORT",
        "WEAVIATE_GRPC_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_normalize_provider():
    assert normalize_provider(" OpenAI ") == "openai"
    with pytest.raises(LLMValidationError):
        normalize_provider("carrier-pigeon")
    with pytest.raises(LLMValidationError):
        normalize_provider(None)


def test_provider_defaults_and_credentials(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")

    config = LLMConfig.for_provider("groq")

    assert config.provider == "groq"
    assert config.model_name == "llama3-70b-8192"
    assert config.api_key == "gsk-test"
    assert config.api_base == "https://api.groq.com/openai/v1"
    assert config.temperature == 0.0


def test_base_url_can_be_overridden(monkeypatch):
    monkeypatch.setenv("SAMBANOVA_API_BASE_URL", "http://proxy.local/v1")
    assert LLMConfig.for_provider("sambanova").api_base == "http://proxy.local/v1"


def test_from_environment(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "sambanova")
    monkeypatch.setenv("LLM_MODEL_NAME", "Meta-Llama-3.1-8B-Instruct")
    monkeypatch.setenv("LLM_MAX_TOKENS", "2048")

    config = LLMConfig.from_environment()

    assert config.provider == "sambanova"
    assert config.model_name == "Meta-Llama-3.1-8B-Instruct"
    assert config.max_tokens == 2048
    # an explicit provider wins over LLM_PROVIDER
    assert LLMConfig.from_environment("openai").provider == "openai"


def test_missing_api_key_fails_validation():
    config = LLMConfig.for_provider("groq")
    with pytest.raises(LLMValidationError, match="GROQ_API_KEY"):
        config.validate()
    with pytest.raises(LLMValidationError):
        LangChainProvider(config)


def test_out_of_range_generation_settings_fail_validation():
    config = LLMConfig.for_provider("openai", api_key="sk-test", temperature=3.0)
    with pytest.raises(LLMValidationError, match="Temperature"):
        config.validate()


def test_weaviate_config_uses_test_ports(monkeypatch):
    monkeypatch.setenv("DB_ENVIRONMENT", "test")
    config = WeaviateConfig.from_environment()

    assert config.environment is DatabaseEnvironment.TEST
    assert (config.port, config.grpc_port) == (8081, 50052)
    assert config.is_local


def test_store_backend_selection(monkeypatch):
    assert store_backend_from_environment() is StoreBackend.WEAVIATE
    monkeypatch.setenv("ANALYSIS_STORE", "Memory")
    assert store_backend_from_environment() is StoreBackend.MEMORY
    monkeypatch.setenv("ANALYSIS_STORE", "postgres")
    with pytest.raises(ConfigurationError):
        store_backend_from_environment()
