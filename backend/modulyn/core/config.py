from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Unknown keys are ignored so one .env can be shared with the frontend build.
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "Modulyn CRM"
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"

    SECRET_KEY: str = "change_me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "modulyn-crm"
    JWT_AUDIENCE: str = "modulyn-crm-api"

    DATABASE_URL: str = ""
    POSTGRES_SERVER: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "modulyn_crm"

    REDIS_URL: str = "redis://redis:6379/0"
    CELERY_BROKER_URL: str = "redis://redis:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/2"

    BACKEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
    )
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])

    ENABLE_API_DOCS: bool = False
    RATE_LIMIT_ENABLED: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCK_MINUTES: int = 15

    # New tenants start on a trial; the bearer dependency answers 402 once it lapses unpaid.
    TRIAL_DAYS: int = 14
    UPGRADE_URL: str = "/upgrade"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "no-reply@modulyn.local"

    REMINDER_CHECK_SECONDS: int = 60

    @model_validator(mode="after")
    def _prod_guards(self):
        if self.ENVIRONMENT.lower() == "production":
            if self.ENABLE_API_DOCS:
                raise ValueError("ENABLE_API_DOCS must be false in production")
            if not self.SECRET_KEY or len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be 32+ chars in production")
            if any(h == "*" for h in self.ALLOWED_HOSTS):
                raise ValueError('ALLOWED_HOSTS must not contain "*" in production')
        elif not self.ALLOWED_HOSTS:
            self.ALLOWED_HOSTS = ["*"]
        return self

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
