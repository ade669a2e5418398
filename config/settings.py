from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from downcache.utils.logging import LEVELS as LOG_LEVELS


def _check_log_level(value: str) -> str:
    value = value.strip().lower()
    if value not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
    return value


class Settings(BaseSettings):
    # Cache settings
    directory: str = "./cache/"
    rate_limit: int = Field(1000, ge=0)  # milliseconds per live fetch

    # Logging
    log_level: str = "warn"

    model_config = {
        "env_prefix": "DOWNCACHE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, value: str) -> str:
        return _check_log_level(value)


class CacheConfig(BaseModel):
    """Immutable snapshot of the settings a retrieve call runs with."""

    directory: str = "./cache/"
    rate_limit: int = Field(1000, ge=0)
    log_level: str = "warn"

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, value: str) -> str:
        return _check_log_level(value)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CacheConfig":
        settings = settings or Settings()
        return cls(
            directory=settings.directory,
            rate_limit=settings.rate_limit,
            log_level=settings.log_level,
        )

    def merged(self, update: "ConfigUpdate") -> "CacheConfig":
        """Return a new snapshot with the fields set on ``update`` applied."""
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        return CacheConfig(**{**self.model_dump(), **changes})


class ConfigUpdate(BaseModel):
    """Partial configuration record; unset fields leave the current value alone."""

    directory: str | None = None
    rate_limit: int | None = Field(None, ge=0)
    log_level: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, value: str | None) -> str | None:
        return None if value is None else _check_log_level(value)

    @classmethod
    def coerce(cls, update: "ConfigUpdate | Mapping[str, Any] | None" = None, **fields: Any) -> "ConfigUpdate":
        if isinstance(update, ConfigUpdate):
            data = update.model_dump(exclude_unset=True)
        else:
            data = dict(update or {})
        data.update(fields)
        return cls(**data)
