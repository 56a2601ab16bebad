"""
Error types shared by the sources, the store and the HTTP layer.
"""

from __future__ import annotations


class PracticeError(Exception):
    """Base class for errors the HTTP layer knows how to render."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(PracticeError):
    """A required setting is missing."""


class UpstreamError(PracticeError):
    """A remote API returned an error payload or could not be reached."""

    status_code = 502

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class ValidationError(PracticeError):
    status_code = 400


class StoreError(PracticeError):
    """The practice store failed to read or write."""


class StoreNotConfiguredError(StoreError):
    def __init__(self, message: str = "Practice store not configured"):
        super().__init__(message)
