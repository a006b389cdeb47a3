"""Application Configuration

Type-safe configuration using Pydantic Settings for environment variable handling.

The two settings Hermes cannot guess (model API key, tool provider endpoint)
are required: a missing value fails at import, before the server starts.
Everything else has a development default.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # =============================================================================
    # APPLICATION
    # =============================================================================

    app_name: str = Field(default="hermes-search", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # =============================================================================
    # API CONFIGURATION
    # =============================================================================

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="console", alias="LOG_FORMAT")

    # Comma-separated; "*" allows any origin
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # =============================================================================
    # HERMES
    # =============================================================================

    # Tool provider (MCP streamable HTTP endpoint)
    hermes_mcp_url: str = Field(..., alias="HERMES_MCP_URL")
    hermes_connect_timeout: float = Field(default=10.0, gt=0, alias="HERMES_CONNECT_TIMEOUT")

    # Generative service
    openai_api_key: str = Field(..., alias="OPENAI_API_KEY")
    hermes_model: str = Field(default="gpt-4o-mini", alias="HERMES_MODEL")
    hermes_max_steps: int = Field(default=5, ge=1, alias="HERMES_MAX_STEPS")
    hermes_run_timeout: float | None = Field(default=60.0, gt=0, alias="HERMES_RUN_TIMEOUT")

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.model_validate({})


settings = get_settings()
