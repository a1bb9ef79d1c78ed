"""
Exception types shared by the capture, model, batch and web layers.

Parse failures have no exception type: an unparseable model response
downgrades to raw-text display and is never raised.
"""
from __future__ import annotations

from typing import Optional


class MangaLensError(Exception):
    """Base error for request-level failures."""
    pass


class CaptureError(MangaLensError):
    """No image could be obtained from the screen."""
    pass


class ModelCallError(MangaLensError):
    """Gemini call failed (network error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PersistenceError(MangaLensError):
    """Derived text could not be written."""
    pass


class ConfigurationMissingError(MangaLensError):
    """No Gemini API key was supplied or configured."""
    pass


class InvalidDirectoryError(MangaLensError):
    """Requested batch directory is missing or not a directory."""
    pass
