"""Tests for the feed registry and the host request handlers."""

from pathlib import Path

import pytest

from nuget_gallery.aggregator import GlobFileDiscovery, ProjectAggregator
from nuget_gallery.errors import TransportError, UnsupportedFeedError
from nuget_gallery.feed_client import NuGetFeedV2
from nuget_gallery.handlers import FETCH_PACKAGE_FAILED, get_package, get_projects
from nuget_gallery.models import Package, PackageResult
from nuget_gallery.registry import FeedRegistry


class FakeFeed:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def get_package(self, id):
        self.calls.append(id)
        if self.error:
            raise self.error
        return self.result


class FakeRegistry:
    def __init__(self, feeds):
        self.feeds = feeds

    def get(self, url):
        return self.feeds[url]


FOUND = PackageResult(package=Package(id="x", name="Foo", version="1.0.0"))
MISSING = PackageResult(is_error=True, error_message="")


@pytest.mark.asyncio
async def test_registry_reuses_one_client_per_url():
    async with FeedRegistry("/opt/cp") as registry:
        first = registry.get("https://feed.example/api/v2")
        second = registry.get("https://feed.example/api/v2")
        other = registry.get("https://other.example/nuget")

    assert first is second
    assert first is not other
    assert isinstance(first, NuGetFeedV2)


def test_registry_rejects_v3_sources():
    registry = FeedRegistry("/opt/cp")

    with pytest.raises(UnsupportedFeedError):
        registry.get("https://api.nuget.org/v3/index.json")


@pytest.mark.asyncio
async def test_get_package_returns_primary_result():
    registry = FakeRegistry({"main": FakeFeed(FOUND)})

    response = await get_package(registry, "main", "Foo")

    assert response.is_failure is False
    assert response.package.name == "Foo"


@pytest.mark.asyncio
async def test_get_package_prefers_first_successful_other_source():
    main = FakeFeed(FOUND)
    first = FakeFeed(MISSING)
    second = FakeFeed(PackageResult(package=Package(id="y", name="Foo", version="2.0.0")))
    registry = FakeRegistry({"main": main, "a": first, "b": second})

    response = await get_package(registry, "main", "Foo", other_urls=["a", "b"])

    assert response.package.version == "2.0.0"
    assert main.calls == []


@pytest.mark.asyncio
async def test_get_package_falls_back_to_primary_source():
    registry = FakeRegistry({"main": FakeFeed(FOUND), "a": FakeFeed(MISSING)})

    response = await get_package(registry, "main", "Foo", other_urls=["a"])

    assert response.package.version == "1.0.0"


@pytest.mark.asyncio
async def test_get_package_failure_carries_fixed_message():
    registry = FakeRegistry({"main": FakeFeed(error=TransportError("boom", "main"))})

    response = await get_package(registry, "main", "Foo")

    assert response.is_failure is True
    assert response.package is None
    assert response.error == FETCH_PACKAGE_FAILED


@pytest.mark.asyncio
async def test_get_projects_lists_workspace(tmp_path: Path):
    (tmp_path / "App.csproj").write_text(
        '<Project><ItemGroup><PackageReference Include="Foo" Version="1.0.0" /></ItemGroup></Project>',
        encoding="utf-8",
    )

    projects = await get_projects(ProjectAggregator(GlobFileDiscovery(tmp_path)))

    assert [p.name for p in projects] == ["App.csproj"]
