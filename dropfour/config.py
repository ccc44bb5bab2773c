"""
Configuration - Settings for the CLI and the API server.

Settings are read from DROPFOUR_* environment variables:

    DROPFOUR_ENV               development | production
    DROPFOUR_ENDPOINT_URL      inference endpoint (POST)
    DROPFOUR_REQUEST_TIMEOUT   HTTP timeout for one call, seconds
    DROPFOUR_ALLOWED_ORIGINS   comma-separated CORS origins
    DROPFOUR_STATS_PATH        directory for the win/loss/draw record
    DROPFOUR_LOG_LEVEL         logging level name
    DROPFOUR_MAX_RETRIES       rate-limit retries before falling back
    DROPFOUR_MODEL             model name forwarded to the endpoint
    DROPFOUR_LIMIT_<CATEGORY>  dispatches per minute for one category

Usage:
    settings = Settings.from_env()
    scheduler = RequestScheduler(call=client, config=settings.scheduler)
"""

from __future__ import annotations
from typing import Mapping, Optional
import os

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .decision.config import DecisionConfig
from .remote.client import DEFAULT_ENDPOINT
from .scheduler.config import CategoryConfig, SchedulerConfig, default_categories

ENV_PREFIX = "DROPFOUR_"
LIMIT_PREFIX = ENV_PREFIX + "LIMIT_"

__all__ = [
    "CategoryConfig",
    "DecisionConfig",
    "SchedulerConfig",
    "Settings",
    "default_categories",
]


class Settings(BaseModel):
    """Everything needed to wire a scheduler, a client and sessions."""
    env: str = "development"
    endpoint_url: str = DEFAULT_ENDPOINT
    request_timeout: float = Field(default=30.0, gt=0)
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    stats_path: Optional[str] = None
    log_level: str = "INFO"
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    decision: DecisionConfig = Field(default_factory=DecisionConfig)

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from the environment.

        Raises ConfigurationError for values that fail validation.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str | None = None) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else default

        try:
            decision_options = {}
            if get("MAX_RETRIES") is not None:
                decision_options["max_retries"] = get("MAX_RETRIES")
            if get("MODEL") is not None:
                decision_options["model"] = get("MODEL")

            return cls(
                env=get("ENV", "development"),
                endpoint_url=get("ENDPOINT_URL", DEFAULT_ENDPOINT),
                request_timeout=get("REQUEST_TIMEOUT", "30"),
                allowed_origins=[
                    origin.strip()
                    for origin in get("ALLOWED_ORIGINS", "*").split(",")
                    if origin.strip()
                ],
                stats_path=get("STATS_PATH"),
                log_level=get("LOG_LEVEL", "INFO").upper(),
                scheduler=cls._scheduler_from_env(env),
                decision=DecisionConfig(**decision_options),
            )
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid configuration",
                context={"errors": "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                )},
            ) from e

    @staticmethod
    def _scheduler_from_env(env: Mapping[str, str]) -> SchedulerConfig:
        categories = default_categories()
        for key, value in sorted(env.items()):
            if not key.startswith(LIMIT_PREFIX) or value == "":
                continue
            name = key[len(LIMIT_PREFIX):].lower()
            override = CategoryConfig(name=name, max_per_window=value)
            names = [c.name for c in categories]
            if name in names:
                categories[names.index(name)] = override
            else:
                # The last category stays the fallback
                categories.insert(len(categories) - 1, override)
        return SchedulerConfig(categories=categories)
