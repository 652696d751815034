"""Configuration settings for SmartInvoice."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Public holiday source (Nager.Date)
    holiday_api_url: str = Field(
        default="https://date.nager.at/api/v3", validation_alias="HOLIDAY_API_URL"
    )
    holiday_country: str = Field(default="GR", validation_alias="HOLIDAY_COUNTRY")
    holiday_timeout: float = Field(default=10.0, validation_alias="HOLIDAY_TIMEOUT")

    # Layout hint provider (optional, Gemini)
    google_api_key: SecretStr | None = Field(default=None, validation_alias="GOOGLE_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_MODEL")
    hint_timeout: float = Field(default=8.0, validation_alias="HINT_TIMEOUT")
    llm_max_tokens: int = Field(default=1024, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.1, validation_alias="LLM_TEMPERATURE")

    # Fill defaults
    default_hours_per_day: float = Field(default=8.0, validation_alias="DEFAULT_HOURS_PER_DAY")
    weekend_fill_color: str = Field(default="D3D3D3", validation_alias="WEEKEND_FILL_COLOR")

    # Client profiles
    clients_file: str = Field(default="clients.yaml", validation_alias="CLIENTS_FILE")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
