"""Retries with exponential backoff and descriptive precondition checks."""

from steadfast.application.check_service import argcheck, check
from steadfast.domain.config import BackoffSpec, RetryPolicy
from steadfast.domain.errors import ArgumentError, DimensionMismatch
from steadfast.infrastructure.backoff import generate
from steadfast.infrastructure.introspection import describe_source
from steadfast.infrastructure.retry import execute, retry, retry_always, retry_if

__all__ = [
    "ArgumentError",
    "BackoffSpec",
    "DimensionMismatch",
    "RetryPolicy",
    "argcheck",
    "check",
    "describe_source",
    "execute",
    "generate",
    "retry",
    "retry_always",
    "retry_if",
]
