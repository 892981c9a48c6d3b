from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "ba_user"
    postgres_password: str = "changeme"
    postgres_db: str = "brand_analytics"

    @property
    def postgres_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker + result backend)
    redis_url: str = "redis://localhost:6379/0"

    # Identity resolution
    brand_similarity_threshold: float = 0.85  # trigram similarity for fuzzy name matching
    default_fact_tag: str = "untagged"

    # Jobs
    job_max_retries: int = 3
    repair_batch_limit: int = 500  # distinct brand names re-linked per repair run

    # App
    app_env: str = "development"
    app_debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on worker startup in non-test environments."""
    errors: list[str] = []

    if not 0.0 < settings.brand_similarity_threshold <= 1.0:
        errors.append("BRAND_SIMILARITY_THRESHOLD must be in (0, 1]")

    if not settings.default_fact_tag.strip():
        errors.append("DEFAULT_FACT_TAG must not be blank")

    if settings.job_max_retries < 0:
        errors.append("JOB_MAX_RETRIES must not be negative")

    if settings.app_env == "production":
        if settings.postgres_password in ("changeme", ""):
            errors.append("POSTGRES_PASSWORD must be set in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
