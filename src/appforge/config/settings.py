"""Application settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def _env_names(field_name: str, unprefixed: str) -> AliasChoices:
    # Field name first so constructor arguments win over both env spellings.
    return AliasChoices(field_name, f"APPFORGE_{unprefixed}", unprefixed)


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and env files.

    Credentials accept both the APPFORGE_-prefixed and the bare name
    (SECRET_KEY, GITHUB_TOKEN, ...), from the process environment or from
    `.env` / `.env.local`.
    """

    app_name: str = "appforge"
    app_env: str = "dev"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    # Empty disables the shared-secret check.
    secret_key: str = Field(default="", validation_alias=_env_names("secret_key", "SECRET_KEY"))
    llm_provider: str = "openai"
    openai_api_key: str = Field(
        default="", validation_alias=_env_names("openai_api_key", "OPENAI_API_KEY")
    )
    openai_model: str = "gpt-4-turbo-preview"
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_api_key: str = Field(
        default="", validation_alias=_env_names("anthropic_api_key", "ANTHROPIC_API_KEY")
    )
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    anthropic_base_url: str = "https://api.anthropic.com"
    llm_max_tokens: int = Field(default=8192, ge=1)
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_timeout_s: float = Field(default=120.0, ge=0.5)
    github_token: str = Field(
        default="", validation_alias=_env_names("github_token", "GITHUB_TOKEN")
    )
    github_username: str = Field(
        default="", validation_alias=_env_names("github_username", "GITHUB_USERNAME")
    )
    github_api_url: str = "https://api.github.com"
    github_timeout_s: float = Field(default=30.0, ge=0.5)
    pages_branch: str = "main"
    notify_timeout_s: float = Field(default=30.0, ge=0.1)

    model_config = SettingsConfigDict(
        env_prefix="APPFORGE_",
        extra="ignore",
        populate_by_name=True,
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
