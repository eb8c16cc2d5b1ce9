"""
Configuration management.

Loads settings from environment variables, .env file and ~/.botmem/config.yaml.
Prefix: BOTMEM_ (nested fields use __, e.g. BOTMEM_LLM__PROVIDER)
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from botmem.core.errors import ConfigurationError

DEFAULT_DIR = Path.home() / ".botmem"


class LLMSettings(BaseModel):
    """Extraction backend selection."""

    provider: str = Field(default="", description="claude, anthropic or ollama")
    model: str = Field(default="", description="Model name, backend default when empty")
    api_key: str = Field(default="", description="Anthropic API key")
    base_url: str = Field(default="", description="Ollama endpoint")


class EmbeddingSettings(BaseModel):
    """Optional embedding provider for archival facts."""

    enabled: bool = False
    model: str = Field(default="nomic-embed-text")
    base_url: str = Field(default="http://localhost:11434")
    dimensions: int = Field(default=768, description="Vector length of the embedding model")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BOTMEM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default=DEFAULT_DIR, description="Data storage directory")
    db_name: str = Field(default="botmem.db", description="SQLite database name")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def log_file(self) -> Path:
        return self.data_dir / "botmem.log"


def default_config_path() -> Path:
    return DEFAULT_DIR / "config.yaml"


def config_exists(path: Path | None = None) -> bool:
    return (path or default_config_path()).is_file()


def load_settings(path: Path | None = None, **overrides) -> Settings:
    """Load settings from the YAML config file.

    File values take precedence over BOTMEM_ environment variables.
    Raises ConfigurationError if the file is missing or malformed.
    """
    path = path or default_config_path()
    if not path.is_file():
        raise ConfigurationError("no config found - run 'botmem init' to set up")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"parse config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"parse config {path}: expected a mapping")

    data.update(overrides)
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid config {path}: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write LLM and embedding settings to YAML (0600, may contain API keys)."""
    path = path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "llm": settings.llm.model_dump(),
        "embeddings": settings.embeddings.model_dump(),
    }
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    os.chmod(path, 0o600)
    return path


def get_settings() -> Settings:
    """Get settings, preferring the config file when present."""
    if config_exists():
        return load_settings()
    return Settings()
