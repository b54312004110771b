from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")
    backend_session_secret: str = Field(..., alias="BACKEND_SESSION_SECRET")

    allowed_users_raw: str = Field("", alias="ALLOWED_USER_IDS")

    gloo_client_id: str | None = Field(None, alias="GLOO_CLIENT_ID")
    gloo_client_secret: str | None = Field(None, alias="GLOO_CLIENT_SECRET")
    gloo_token_url: str = Field("https://platform.ai.gloo.com/oauth2/token", alias="GLOO_TOKEN_URL")
    gloo_chat_url: str = Field("https://platform.ai.gloo.com/ai/v1/chat/completions", alias="GLOO_CHAT_URL")
    suggestion_model: str = Field("us.anthropic.claude-sonnet-4-20250514-v1:0", alias="SUGGESTION_MODEL")
    suggestion_max_tokens: int = Field(80, alias="SUGGESTION_MAX_TOKENS")
    suggestion_timeout_seconds: float = Field(20.0, alias="SUGGESTION_TIMEOUT_SECONDS")

    insight_window_days: int = Field(7, alias="INSIGHT_WINDOW_DAYS")
    # Python weekday of the first column in the week grid; 6 is Sunday.
    week_start_day: int = Field(6, alias="WEEK_START_DAY")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_users(self) -> List[str]:
        return [item.strip() for item in self.allowed_users_raw.split(",") if item.strip()]

    @property
    def suggestions_configured(self) -> bool:
        return bool(self.gloo_client_id and self.gloo_client_secret)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
