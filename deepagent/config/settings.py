"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeepAgentSettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables should be prefixed with DEEPAGENT_
    Example: DEEPAGENT_LOG_LEVEL=DEBUG, DEEPAGENT_REDIS_URL=redis://localhost:6379/0
    """

    model_config = SettingsConfigDict(
        env_prefix="DEEPAGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_logs: bool = False

    # Agent loop defaults
    default_max_steps: int = Field(default=100, ge=1)

    # Model provider (OpenAI compatible)
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None

    # Web tools
    tavily_api_key: SecretStr | None = None
    http_timeout: float = Field(default=30.0, gt=0)

    # Persistence
    redis_url: str = "redis://localhost:6379/0"
    sqlite_path: str = "deepagent.db"
    checkpoint_dir: str = ".checkpoints"

    # Local sandbox
    sandbox_timeout: float = Field(default=30.0, gt=0)
    sandbox_max_output_bytes: int = Field(default=1024 * 1024, ge=1)


# Global settings instance (singleton)
settings = DeepAgentSettings()


__all__ = ["DeepAgentSettings", "settings"]
