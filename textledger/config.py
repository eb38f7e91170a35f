from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    telegram_bot_token: str = ""
    db_path: str = "ledger.json"
    default_currency: str = "USD"
    # Counterpart assumed when a split names nobody
    default_other_party: str = "vyas"
    log_level: str = "INFO"

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("default_other_party")
    @classmethod
    def non_blank_party(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("default_other_party must not be blank")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
