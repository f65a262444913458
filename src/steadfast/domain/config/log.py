"""Logging configuration model."""

from pydantic import BaseModel, Field, field_validator

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    """Configuration for log output.

    Attributes:
        level: Root log level name
    """

    level: str = Field("INFO")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in _LEVELS:
            raise ValueError(f"level must be one of: {', '.join(_LEVELS)}")
        return normalized
