"""
Per-source registry of feed clients.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .credentials import CredentialAcquirer
from .errors import UnsupportedFeedError
from .feed_client import NuGetFeedV2
from .interfaces import FeedClient, TaskRunner


logger = logging.getLogger(__name__)


class FeedRegistry:
    """Hand out one feed client per source URL.

    The registry is owned by the caller; each client it creates keeps its
    own credential cache for as long as the registry lives.
    """

    def __init__(
        self,
        credential_provider_folder: str = "",
        proxy: Optional[str] = None,
        task_runner: Optional[TaskRunner] = None,
        timeout: float = 30.0,
        credential_timeout: float = 10.0,
    ) -> None:
        self.credential_provider_folder = credential_provider_folder
        self.proxy = proxy
        self.task_runner = task_runner
        self.timeout = timeout
        self.credential_timeout = credential_timeout
        self._clients: Dict[str, FeedClient] = {}

    async def __aenter__(self) -> "FeedRegistry":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def get(self, url: str) -> FeedClient:
        if url in self._clients:
            return self._clients[url]

        if url.endswith("index.json"):
            raise UnsupportedFeedError(f"V3 sources are not supported: {url}")

        logger.debug("Creating V2 feed client for %s", url)
        acquirer = CredentialAcquirer(
            self.credential_provider_folder,
            task_runner=self.task_runner,
            timeout=self.credential_timeout,
        )
        client = NuGetFeedV2(url, acquirer, proxy=self.proxy, timeout=self.timeout)
        self._clients[url] = client
        return client

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
