from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "ABFI Rating & Bankability Engine"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"

    # Provenance / certificates
    methodology_version: str = "1.0.0"
    certificate_issuer: str = "Australian Bioenergy Feedstock Institute"
    certificate_validity_days: int = 365
    # TTF used for certificate data rows; core Helvetica when unset
    certificate_font_path: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="ABFI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
