"""
Runtime settings for feed access.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_SOURCE = "https://www.nuget.org/api/v2"
DEFAULT_CREDENTIAL_PROVIDER_FOLDER = (
    "{user-profile}/.nuget/plugins/netcore/CredentialProvider.Microsoft"
)


@dataclass(frozen=True)
class GallerySettings:
    """Settings shared by the CLI and the feed registry."""

    credential_provider_folder: str = DEFAULT_CREDENTIAL_PROVIDER_FOLDER
    http_proxy: Optional[str] = None
    timeout: float = 30.0
    credential_timeout: float = 10.0
    default_source: str = DEFAULT_SOURCE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GallerySettings":
        """Build settings from ``NUGET_GALLERY_*`` environment variables.

        Raises:
            ValueError: If a numeric setting is not a number.
        """
        environ = os.environ if environ is None else environ
        timeout = environ.get("NUGET_GALLERY_TIMEOUT")
        return cls(
            credential_provider_folder=environ.get(
                "NUGET_GALLERY_CREDENTIAL_PROVIDER_FOLDER", DEFAULT_CREDENTIAL_PROVIDER_FOLDER
            ),
            http_proxy=environ.get("NUGET_GALLERY_HTTP_PROXY") or None,
            timeout=float(timeout) if timeout else 30.0,
            default_source=environ.get("NUGET_GALLERY_SOURCE", DEFAULT_SOURCE),
        )
