from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Relay API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:8080",
            "http://127.0.0.1",
            "http://127.0.0.1:8080",
        ],
        description="List of allowed CORS origins",
    )

    cors_allow_origin_regex: str | None = Field(
        default=r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$",
        description="Optional regular expression that matches allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* fields",
    )
    database_user: str = Field(default="relay", validation_alias=AliasChoices("DB_USER", "database_user"))
    database_password: str = Field(default="relay", validation_alias=AliasChoices("DB_PASSWORD", "database_password"))
    database_host: str = Field(default="db", validation_alias=AliasChoices("DB_HOST", "database_host"))
    database_port: int = Field(default=3306, validation_alias=AliasChoices("DB_PORT", "database_port"))
    database_name: str = Field(default="relay", validation_alias=AliasChoices("DB_NAME", "database_name"))

    db_pool_size: int = Field(default=10, description="Persistent pooled connections")
    db_max_overflow: int = Field(default=20, description="Extra connections on demand")
    db_pool_timeout_seconds: float = Field(
        default=10.0,
        description="How long a store call waits for a pooled connection",
    )

    admin_email: str = "admin@example.com"
    admin_password: str | None = None
    admin_password_hash: str | None = Field(
        default=None,
        description="passlib hash of the admin password; preferred over ADMIN_PASSWORD",
    )
    jwt_secret_key: str = "changeme"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    message_max_length: int = 500
    nick_max_length: int = 24
    user_color_max_length: int = 7
    user_status_max_length: int = 50
    default_nick: str = "Аноним"
    reaction_max_count: int = 99
    history_limit: int = Field(default=30, description="Messages replayed to a client on connect")
    reaction_lookup_window: int = Field(
        default=1000,
        description="Recent messages searched when resolving a reaction target",
    )
    admin_history_limit: int = 1000

    retention_days: int = 7
    retention_sweep_interval_seconds: float = 24 * 60 * 60
    retention_sweep_enabled: bool = True

    websocket_keepalive_timeout_seconds: float = 30
    websocket_keepalive_ping_interval_seconds: float = 25

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def retention_window_ms(self) -> int:
        return self.retention_days * 24 * 60 * 60 * 1000

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("default_nick")
    @classmethod
    def ensure_default_nick(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("default nick must not be blank")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
