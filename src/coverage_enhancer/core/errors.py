# src/coverage_enhancer/core/errors.py
from pathlib import Path
from typing import Optional, Union


class EnhancerError(Exception):
    """Base class for all errors raised while enhancing coverage reports."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class DiscoveryError(EnhancerError):
    """The root directory could not be searched. Fails the whole run."""


class DocumentParseError(EnhancerError):
    """A report file could not be read or decoded."""


class DocumentWriteError(EnhancerError):
    """A report, badge or summary file could not be written."""


class BadgeServiceError(EnhancerError):
    """The badge service was unreachable, timed out or answered with an error."""
