from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_env: str = "dev"
    log_level: str = "info"
    log_dir: str = "logs"
    log_file: str = "doc_mapping.log"
    default_page_width: float = 1000.0
    default_page_height: float = 1000.0
    check_mapping_invariants: bool = False

    @field_validator("log_level")
    @classmethod
    def _uppercase_level(cls, value: str) -> str:
        """Normalize level names for the logging module."""

        return value.strip().upper()

    @field_validator("default_page_width", "default_page_height")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Default page size must be positive")
        return value


settings = Settings()
