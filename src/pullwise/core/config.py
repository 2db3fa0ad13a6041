"""Environment-driven configuration using Pydantic Settings."""

from __future__ import annotations

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All env vars are prefixed with ``PULLWISE_`` and can be set via a ``.env`` file.
    Nothing is required: a process without any AI credential still starts and
    simply reports no available providers.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PULLWISE_",
        case_sensitive=False,
    )

    # --- GitHub ---
    github_api_base: str = "https://api.github.com"
    github_webhook_secret: SecretStr | None = None

    # --- AI providers (OpenAI-compatible endpoints) ---
    openai_api_key: SecretStr | None = None
    gemini_api_key: SecretStr | None = None
    qwen_api_key: SecretStr | None = None

    # --- Linear ---
    linear_api_url: str = "https://api.linear.app/graphql"

    # --- Storage ---
    store_backend: Literal["memory", "sqlite"] = "sqlite"
    database_path: str = ".pullwise.db"

    # --- Worker ---
    worker_concurrency: int = 4
    recover_pending_on_start: bool = True

    # --- Transport ---
    http_timeout_seconds: float = 30.0
    ai_timeout_seconds: float = 120.0

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    debug: bool = False

    def provider_credentials(self) -> dict[str, SecretStr | None]:
        """Credential values keyed by the settings field that holds them."""
        return {
            "openai_api_key": self.openai_api_key,
            "gemini_api_key": self.gemini_api_key,
            "qwen_api_key": self.qwen_api_key,
        }


def get_settings() -> Settings:
    """Factory that creates a Settings instance from the environment."""
    return Settings()
