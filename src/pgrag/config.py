"""
pgrag Configuration Module
==========================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    DATABASE_URL: PostgreSQL connection URL with pgvector installed (required for the store)
    DATABASE_CONNECT_TIMEOUT: Connection timeout in seconds (default: 10)
    RAG_TABLE_NAME: Table holding records and embeddings (default: rag_records)

    OPENAI_API_KEY / GPT_API_KEY: OpenAI key for embeddings and chat
    EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
    EMBEDDING_DIMENSIONS: Embedding dimensions (default: 1536)

    LLM_PROVIDER: openai | anthropic (default: auto-detect from API keys)
    LLM_MODEL: Chat model override
    LLM_MAX_TOKENS: Completion token cap (default: 1024)
    LLM_TEMPERATURE: Sampling temperature (default: 0.7)

    RAG_DEFAULT_K: Default number of records to retrieve (default: 4)
    RAG_DISTANCE_METRIC: cosine | euclidean | inner_product (default: cosine)
    RAG_THRESHOLD_MODE: max_distance | min_similarity (default: max_distance; min_similarity needs cosine)

    LOG_LEVEL, LOG_FILE, LOG_JSON: Logging options
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path.cwd() / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    # Try project root
    project_root = Path(__file__).parent.parent.parent / ".env"
    if project_root.exists():
        load_dotenv(project_root)


DISTANCE_METRICS = ("cosine", "euclidean", "inner_product")
THRESHOLD_MODES = ("max_distance", "min_similarity")


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class DatabaseConfig:
    """PostgreSQL / pgvector configuration."""

    url: Optional[str] = field(default_factory=lambda: get_env("DATABASE_URL"))
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))
    table_name: str = field(default_factory=lambda: get_env("RAG_TABLE_NAME", "rag_records"))

    def __post_init__(self):
        """Validate configuration."""
        if not self.table_name.replace("_", "").isalnum():
            raise ValueError(f"RAG_TABLE_NAME must be a plain identifier, got: {self.table_name}")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration."""

    api_key: Optional[str] = field(
        default_factory=lambda: get_env("OPENAI_API_KEY") or get_env("GPT_API_KEY")
    )
    model: str = field(default_factory=lambda: get_env("EMBEDDING_MODEL", "text-embedding-3-small"))
    dimensions: int = field(default_factory=lambda: get_env_int("EMBEDDING_DIMENSIONS", 1536))

    def __post_init__(self):
        if self.dimensions <= 0:
            raise ValueError("dimensions must be positive")


@dataclass
class LLMConfig:
    """Chat model configuration."""

    provider: Optional[str] = field(default_factory=lambda: get_env("LLM_PROVIDER"))
    model: Optional[str] = field(default_factory=lambda: get_env("LLM_MODEL"))
    max_tokens: int = field(default_factory=lambda: get_env_int("LLM_MAX_TOKENS", 1024))
    temperature: float = field(default_factory=lambda: get_env_float("LLM_TEMPERATURE", 0.7))

    def __post_init__(self):
        if self.provider and self.provider not in ("openai", "anthropic"):
            raise ValueError(f"LLM_PROVIDER must be 'openai' or 'anthropic', got: {self.provider}")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")


@dataclass
class SearchConfig:
    """Similarity search configuration."""

    default_k: int = field(default_factory=lambda: get_env_int("RAG_DEFAULT_K", 4))
    distance_metric: str = field(default_factory=lambda: get_env("RAG_DISTANCE_METRIC", "cosine"))
    threshold_mode: str = field(default_factory=lambda: get_env("RAG_THRESHOLD_MODE", "max_distance"))

    def __post_init__(self):
        """Validate configuration."""
        if self.default_k <= 0:
            raise ValueError("default_k must be positive")
        if self.distance_metric not in DISTANCE_METRICS:
            raise ValueError(f"RAG_DISTANCE_METRIC must be one of {DISTANCE_METRICS}, got: {self.distance_metric}")
        if self.threshold_mode not in THRESHOLD_MODES:
            raise ValueError(f"RAG_THRESHOLD_MODE must be one of {THRESHOLD_MODES}, got: {self.threshold_mode}")
        if self.threshold_mode == "min_similarity" and self.distance_metric != "cosine":
            raise ValueError("RAG_THRESHOLD_MODE=min_similarity requires RAG_DISTANCE_METRIC=cosine")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Application metadata
    app_name: str = "pgrag"
    app_version: str = "0.1.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Returns:
        Fully configured Settings instance

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Proxy class for lazy settings access."""

    def __getattr__(self, name):
        return getattr(get_settings(), name)


settings = _SettingsProxy()
