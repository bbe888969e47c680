import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Insight ranking
    TOP_INSIGHTS_LIMIT: int = 3  # headline list size (dashboard)

    # Formula guardrails
    FORMULA_MAX_LENGTH: int = 500
    FORMULA_MAX_DEPTH: int = 32

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    # HTTP
    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def cors_origins(settings_obj: Optional[Settings] = None) -> list[str]:
    cfg = settings_obj or settings
    return [origin.strip() for origin in cfg.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration value ranges.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("chatinsights")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if cfg.TOP_INSIGHTS_LIMIT < 1:
        problems.append("TOP_INSIGHTS_LIMIT must be >= 1")
    if cfg.FORMULA_MAX_LENGTH < 1:
        problems.append("FORMULA_MAX_LENGTH must be >= 1")
    if cfg.FORMULA_MAX_DEPTH < 1:
        problems.append("FORMULA_MAX_DEPTH must be >= 1")
    if cfg.OTEL_EXPORTER not in ("console", "memory"):
        problems.append("OTEL_EXPORTER must be 'console' or 'memory'")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
