from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

PLACEHOLDER_SECRETS = {"", "your_auth_token_here", "change-me"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Smart Recruiter"
    app_version: str = "0.1.0"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 3000
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/smart_recruiter.db"
    data_dir: Path = Path("./data")
    cv_storage_dir: Path = Path("./data/cvs")
    attachment_timeout_sec: int = 30

    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.1-8b-instant"
    groq_timeout_sec: int = 60
    groq_temperature: float = 0.8
    groq_max_tokens: int = 500
    letter_language: str = "French"

    generation_max_attempts: int = 3
    generation_backoff_sec: float = 1.0

    email_backend: str = "auto"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_verify_timeout_sec: int = 5
    resend_api_key: str = ""
    resend_base_url: str = "https://api.resend.com"
    resend_from_email: str = "onboarding@resend.dev"

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    twilio_base_url: str = "https://api.twilio.com/2010-04-01"
    sms_default_country_code: str = "+33"
    sms_timeout_sec: int = 15

    cors_origins: str = "*"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("email_backend")
    @classmethod
    def validate_email_backend(cls, value: str) -> str:
        allowed = {"auto", "smtp", "resend", "disabled"}
        value = value.strip().lower()
        if value not in allowed:
            raise ValueError(f"email_backend must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password not in PLACEHOLDER_SECRETS)

    @property
    def resend_configured(self) -> bool:
        return self.resend_api_key not in PLACEHOLDER_SECRETS

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.groq_api_key:
            missing.append("GROQ_API_KEY")
        if not (self.smtp_configured or self.resend_configured):
            missing.append("SMTP_USER/SMTP_PASSWORD or RESEND_API_KEY")
        if not self.twilio_account_sid:
            missing.append("TWILIO_ACCOUNT_SID")
        if self.twilio_auth_token in PLACEHOLDER_SECRETS:
            missing.append("TWILIO_AUTH_TOKEN")
        if not self.twilio_phone_number:
            missing.append("TWILIO_PHONE_NUMBER")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
