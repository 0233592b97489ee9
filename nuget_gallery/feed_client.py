"""
Client for NuGet V2 (OData/XML) package feeds.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import xml.etree.ElementTree as ET
from typing import Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from .credentials import CredentialAcquirer
from .errors import NuGetGalleryError, TransportError
from .feed_decoder import decode_package_details, decode_packages, decode_versions
from .models import Package, PackageDetails, PackageResult, VersionRef


logger = logging.getLogger(__name__)

SEM_VER_LEVEL = "semVerLevel=2.0.0"
FIND_PACKAGES_BY_ID = "/FindPackagesById()?id='{0}'&" + SEM_VER_LEVEL
SEARCH_ENDPOINT = (
    "/Search()?$filter=IsAbsoluteLatestVersion&searchTerm='{0}'"
    "&includePrerelease={1}&$skip={2}&$top={3}&" + SEM_VER_LEVEL
)

PROXY_ENV_VARS = ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy")


def resolve_proxy(
    configured: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """Pick the proxy URL: host setting first, then the proxy environment variables.

    The first variable that is set decides, so an empty ``HTTPS_PROXY``
    disables the proxy even when ``HTTP_PROXY`` has a value.
    """
    if configured:
        return configured
    environ = os.environ if environ is None else environ
    for name in PROXY_ENV_VARS:
        if name in environ:
            return environ[name] or None
    return None


class NuGetFeedV2:
    """Feed client bound to a single V2 source URL.

    Requests go out anonymously until a source answers 401. The credential
    provider is then asked for credentials once, the resulting Basic token
    is cached for the lifetime of the client, and the request is retried.
    """

    def __init__(
        self,
        source_url: str,
        credential_acquirer: CredentialAcquirer,
        proxy: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.source_url = source_url.rstrip("/")
        self.credential_acquirer = credential_acquirer
        self.proxy = resolve_proxy(proxy)
        if self.proxy:
            logger.info("Found proxy: %s", self.proxy)

        self._token: Optional[str] = None
        self._refresh_count = 0
        self._refresh_task: Optional[asyncio.Task] = None
        self._http = httpx.AsyncClient(
            proxy=self.proxy,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            trust_env=False,
        )

    async def __aenter__(self) -> "NuGetFeedV2":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def search(
        self,
        filter: str,
        include_prerelease: bool = False,
        skip: int = 0,
        take: int = 20,
    ) -> List[Package]:
        """Search the feed and attach every result's known versions.

        Version lookups run concurrently; a failed lookup leaves that
        package's versions empty.

        Raises:
            TransportError: If the search request itself fails.
        """
        url = self.source_url + SEARCH_ENDPOINT.format(
            quote(filter, safe=""),
            "true" if include_prerelease else "false",
            skip,
            take,
        )
        response = await self._get(url)
        try:
            packages = decode_packages(response.text, self.source_url)
        except ET.ParseError as e:
            raise TransportError(f"Invalid feed document on request to {url}: {e}", url) from e

        results = await asyncio.gather(
            *(self.get_package(package.name) for package in packages),
            return_exceptions=True,
        )

        enriched = []
        for package, result in zip(packages, results):
            if isinstance(result, PackageResult) and not result.is_error and result.package:
                package = dataclasses.replace(package, versions=list(result.package.versions))
            else:
                logger.warning("Could not fetch versions for %s", package.name)
            enriched.append(package)
        return enriched

    async def get_versions(self, id: str) -> List[str]:
        """Return every non-empty version the feed lists for ``id``."""
        url = self.source_url + FIND_PACKAGES_BY_ID.format(quote(id, safe=""))
        response = await self._get(url)
        try:
            return decode_versions(response.text)
        except ET.ParseError as e:
            raise TransportError(f"Invalid feed document on request to {url}: {e}", url) from e

    async def get_package(self, id: str) -> PackageResult:
        """Fetch a package with its versions listed newest first."""
        url = self.source_url + FIND_PACKAGES_BY_ID.format(quote(id, safe=""))
        try:
            response = await self._get(url)
            packages = decode_packages(response.text, self.source_url)
            if not packages:
                raise TransportError(f"No entries for {id} on request to {url}", url)
        except (NuGetGalleryError, ET.ParseError) as e:
            logger.warning("Failed to fetch package %s: %s", id, e)
            return PackageResult(package=None, is_error=True, error_message="")

        versions = [VersionRef(version=p.version, id=p.id) for p in reversed(packages)]
        package = dataclasses.replace(packages[0], versions=versions)
        return PackageResult(package=package, is_error=False, error_message=None)

    async def get_package_details(self, url: str) -> PackageDetails:
        try:
            response = await self._get(url)
        except NuGetGalleryError as e:
            logger.debug("Failed to fetch package details from %s: %s", url, e)
            return PackageDetails()
        return decode_package_details(response.text)

    def _headers(self) -> Dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Basic {self._token}"}

    async def _send(self, url: str) -> httpx.Response:
        try:
            return await self._http.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(f"{e} on request to {url}", url) from e

    async def _get(self, url: str) -> httpx.Response:
        seen_refreshes = self._refresh_count
        logger.debug("GET %s", url)
        response = await self._send(url)
        if response.status_code == 401:
            await self._refresh_token(seen_refreshes)
            response = await self._send(url)

        if response.is_error:
            logger.error("Request to %s failed with HTTP %s", url, response.status_code)
            raise TransportError(
                f"HTTP {response.status_code} on request to {url}",
                url,
                status_code=response.status_code,
            )
        return response

    async def _refresh_token(self, seen_refreshes: int) -> None:
        """Wait for a credential refresh, starting one only when none applies.

        A refresh that is still running, or that started after the refused
        request was sent, is shared: its token or its error reaches every
        request waiting on it.
        """
        task = self._refresh_task
        if task is None or (task.done() and self._refresh_count == seen_refreshes):
            logger.info("Source %s requires authentication", self.source_url)
            self._refresh_count += 1
            task = self._refresh_task = asyncio.create_task(self._acquire_token())
        else:
            logger.debug("Reusing the credential refresh started by a concurrent request")
        await asyncio.shield(task)

    async def _acquire_token(self) -> None:
        credentials = await self.credential_acquirer.acquire(self.source_url)
        self._token = credentials.token
