"""Configuration models with Pydantic validation."""

from steadfast.domain.config.app import AppConfig
from steadfast.domain.config.backoff import BackoffSpec
from steadfast.domain.config.log import LoggingConfig
from steadfast.domain.config.retry import RetryPolicy

__all__ = [
    "AppConfig",
    "BackoffSpec",
    "LoggingConfig",
    "RetryPolicy",
]
