"""
Exception types raised by the feed client and the project parsers.
"""

from __future__ import annotations


class NuGetGalleryError(Exception):
    """Base class for errors raised by this package."""


class TransportError(NuGetGalleryError):
    """A request against a feed failed below the retry layer."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class CredentialError(NuGetGalleryError):
    """The credential provider could not produce usable credentials."""

    MESSAGE = "Failed to fetch credentials. See the log for more details"

    def __init__(self, message: str = MESSAGE) -> None:
        super().__init__(message)


class ProjectParseError(NuGetGalleryError):
    """A project or props file could not be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path} has invalid content: {reason}")
        self.path = path
        self.reason = reason


class UnsupportedFeedError(NuGetGalleryError):
    """The source URL points at a feed protocol this client does not speak."""
