"""Configuration for the flow designer backend."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Backend settings with environment variable support.

    Every field can be overridden with a FLOWGRAPH_-prefixed environment
    variable (e.g. FLOWGRAPH_LOG_LEVEL=DEBUG) or from a .env file.
    """

    model_config = SettingsConfigDict(env_prefix="FLOWGRAPH_", env_file=".env", extra="ignore")

    app_title: str = Field(default="Flow Designer Graph API", description="Title shown in the OpenAPI docs")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
        description="Origins allowed to call the API from a browser",
    )
    notification_history: int = Field(
        default=50,
        description="How many recent notifications to keep for the toast feed",
    )
    host: str = Field(default="127.0.0.1", description="Bind address for `python -m backend`")
    port: int = Field(default=8765, description="Port for `python -m backend`")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
