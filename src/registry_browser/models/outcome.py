"""Outcome taxonomy shared by every registry operation."""

from enum import Enum


class ResponseClass(Enum):
    """How a single raw HTTP response from a registry is to be treated."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    RETRYABLE = "retryable"
    FATAL = "fatal"


class Outcome(Enum):
    """Result of a complete logical registry operation.

    Adapters report upstream failures with one of these rather than by
    raising, so the caller can decide what to present.
    """

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    CATALOG_NOT_SUPPORTED = "catalog_not_supported"
    AUTH_REQUIRED = "auth_required"
