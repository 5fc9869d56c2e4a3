from typing import Any, Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Klaviyo Analytics Dashboard"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "klaviyo"
    DB_PASSWORD: str = "klaviyo_pass"
    DB_NAME: str = "klaviyo_analytics"

    # Pool sizing; timeouts are in seconds
    DB_POOL_MAX: int = Field(default=20, ge=1)
    DB_IDLE_TIMEOUT: float = Field(default=30.0, gt=0)
    DB_CONNECTION_TIMEOUT: float = Field(default=2.0, gt=0)

    # When true every caller gets the stand-in manager (no database at all)
    DISABLE_DB: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_connect_kwargs(self) -> dict[str, Any]:
        return {
            "host": self.DB_HOST,
            "port": self.DB_PORT,
            "user": self.DB_USER,
            "password": self.DB_PASSWORD,
            "dbname": self.DB_NAME,
        }


settings = Settings()  # type: ignore
