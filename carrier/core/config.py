from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    project_name: str = Field(default="Carrier", env="PROJECT_NAME")
    url: str = Field(default="http://localhost:8000", env="URL")
    path_base: str = Field(default="", env="PATH_BASE")
    secret_key: str = Field(..., env="SECRET_KEY")
    database_url: str = Field(default="sqlite:///./carrier.db", env="DATABASE_URL")
    dev_mode: bool = Field(default=False, env="DEV_MODE")
    session_cookie_name: str = Field(default="carrier_session", env="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=True, env="SESSION_COOKIE_SECURE")
    session_cookie_max_age: int = Field(default=60 * 60 * 4, env="SESSION_COOKIE_MAX_AGE")
    session_cookie_same_site: Literal["lax", "strict", "none"] = Field(
        default="lax", env="SESSION_COOKIE_SAME_SITE"
    )
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    framework_log_level: str | None = Field(default=None, env="FRAMEWORK_LOG_LEVEL")
    ajax_forms_path: str = Field(default="/ajax/forms", env="AJAX_FORMS_PATH")
    login_path: str = Field(default="/login", env="LOGIN_PATH")
    smtp_host: str | None = Field(default=None, env="SMTP_HOST")
    smtp_port: int = Field(default=587, env="SMTP_PORT")
    smtp_username: str | None = Field(default=None, env="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, env="SMTP_PASSWORD")
    smtp_sender: str | None = Field(default=None, env="SMTP_SENDER")
    smtp_reply_to: str | None = Field(default=None, env="SMTP_REPLY_TO")
    smtp_use_tls: bool = Field(default=True, env="SMTP_USE_TLS")

    @model_validator(mode="after")
    def validate_security(self) -> "Settings":
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long.")
        if "://" not in self.database_url:
            raise ValueError("DATABASE_URL must be a valid connection string.")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
