"""
Request handlers used by the host: package lookup across sources and
workspace project listing.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .aggregator import ProjectAggregator
from .errors import NuGetGalleryError
from .models import GetPackageResponse, Project
from .registry import FeedRegistry


logger = logging.getLogger(__name__)

FETCH_PACKAGE_FAILED = "Failed to fetch package"


async def _get_package_from(registry: FeedRegistry, url: str, id: str) -> GetPackageResponse:
    try:
        result = await registry.get(url).get_package(id)
    except NuGetGalleryError as e:
        logger.error("Failed to fetch package %s from %s: %s", id, url, e)
        return GetPackageResponse(is_failure=True, error=FETCH_PACKAGE_FAILED)

    if result.is_error:
        return GetPackageResponse(is_failure=True, error=FETCH_PACKAGE_FAILED)
    return GetPackageResponse(is_failure=False, package=result.package)


async def get_package(
    registry: FeedRegistry,
    url: str,
    id: str,
    other_urls: Optional[Sequence[str]] = None,
) -> GetPackageResponse:
    """Look a package up in ``other_urls`` first, then in ``url``."""
    for other_url in other_urls or ():
        response = await _get_package_from(registry, other_url, id)
        if not response.is_failure:
            return response
    return await _get_package_from(registry, url, id)


async def get_projects(aggregator: ProjectAggregator) -> List[Project]:
    return await aggregator.get_projects()
