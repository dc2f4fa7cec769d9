from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    project_name: str = Field(
        default="AnimeList",
        alias="PROJECT_NAME",
        validation_alias=AliasChoices("PROJECT_NAME", "project_name"),
    )
    environment: str = Field(
        default="local",
        alias="ENVIRONMENT",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV", "environment"),
    )
    debug: bool = Field(default=True, alias="DEBUG", validation_alias=AliasChoices("DEBUG", "debug"))
    secret_key: str = Field(
        default="change-me",
        alias="SECRET_KEY",
        validation_alias=AliasChoices("SECRET_KEY", "SESSION_SECRET", "secret_key"),
    )
    algorithm: str = Field(
        default="HS256",
        alias="ALGORITHM",
        validation_alias=AliasChoices("ALGORITHM", "algorithm"),
    )
    host: str = Field(default="127.0.0.1", alias="HOST", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=3000, alias="PORT", validation_alias=AliasChoices("PORT", "port"))
    bcrypt_rounds: int = Field(
        default=12,
        alias="BCRYPT_ROUNDS",
        validation_alias=AliasChoices("BCRYPT_ROUNDS", "bcrypt_rounds"),
    )
    session_cookie_name: str = Field(
        default="animelist_session",
        alias="SESSION_COOKIE_NAME",
        validation_alias=AliasChoices("SESSION_COOKIE_NAME", "session_cookie_name"),
    )
    session_expire_minutes: int = Field(
        default=60 * 24,
        alias="SESSION_EXPIRE_MINUTES",
        validation_alias=AliasChoices("SESSION_EXPIRE_MINUTES", "session_expire_minutes"),
    )
    password_reset_expire_minutes: int = Field(
        default=60,
        alias="PASSWORD_RESET_EXPIRE_MINUTES",
        validation_alias=AliasChoices("PASSWORD_RESET_EXPIRE_MINUTES", "password_reset_expire_minutes"),
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        alias="APP_BASE_URL",
        validation_alias=AliasChoices("APP_BASE_URL", "app_base_url"),
    )
    surface_reset_links: bool = Field(
        default=True,
        alias="SURFACE_RESET_LINKS",
        validation_alias=AliasChoices("SURFACE_RESET_LINKS", "surface_reset_links"),
    )
    sqlite_echo: bool = Field(
        default=False,
        alias="SQLITE_ECHO",
        validation_alias=AliasChoices("SQLITE_ECHO", "sqlite_echo"),
    )
    sqlite_journal_mode: str = Field(
        default="WAL",
        alias="SQLITE_JOURNAL_MODE",
        validation_alias=AliasChoices("SQLITE_JOURNAL_MODE", "sqlite_journal_mode"),
    )
    database_path: Path = Field(
        default=PROJECT_ROOT / "data" / "anime_list.db",
        alias="DATABASE_PATH",
        validation_alias=AliasChoices("DATABASE_PATH", "database_path"),
    )
    upload_directory: Path = Field(
        default=PROJECT_ROOT / "uploads",
        alias="UPLOAD_DIRECTORY",
        validation_alias=AliasChoices("UPLOAD_DIRECTORY", "upload_directory"),
    )
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        alias="MAX_UPLOAD_BYTES",
        validation_alias=AliasChoices("MAX_UPLOAD_BYTES", "max_upload_bytes"),
    )
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )

    @field_validator("environment", "log_level", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return str(value).strip()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    @property
    def data_directory(self) -> Path:
        return self.database_path.parent


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
