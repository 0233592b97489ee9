"""
Interfaces for feed clients and host collaborators.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from .models import Package, PackageDetails, PackageResult


class FeedClient(Protocol):
    """Query package metadata from a single package source."""

    source_url: str

    async def search(
        self,
        filter: str,
        include_prerelease: bool = False,
        skip: int = 0,
        take: int = 20,
    ) -> List[Package]:
        ...

    async def get_versions(self, id: str) -> List[str]:
        ...

    async def get_package(self, id: str) -> PackageResult:
        ...

    async def get_package_details(self, url: str) -> PackageDetails:
        ...

    async def aclose(self) -> None:
        ...


class FileDiscovery(Protocol):
    """Find files in the host workspace."""

    async def find(self, pattern: str, exclude: Optional[str] = None) -> List[str]:
        ...


class TaskRunner(Protocol):
    """Run a user-facing command and wait for it to finish."""

    async def run(self, command: str, args: Sequence[str]) -> None:
        ...
