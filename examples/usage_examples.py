#!/usr/bin/env python3
"""
Example script showing how to use the nuget-gallery tools.
"""

import asyncio
from pathlib import Path

from nuget_gallery.aggregator import GlobFileDiscovery, ProjectAggregator
from nuget_gallery.handlers import get_package
from nuget_gallery.registry import FeedRegistry
from nuget_gallery.reporting import export_projects_csv, find_outdated

SOURCE = "https://www.nuget.org/api/v2"


async def example_search(registry: FeedRegistry):
    """Example: Search a feed."""
    print("="*60)
    print("Example 1: Search")
    print("="*60)

    packages = await registry.get(SOURCE).search("json", take=5)
    for package in packages:
        print(f"{package.name} {package.version} - {len(package.versions)} versions")


async def example_package(registry: FeedRegistry):
    """Example: Fetch one package and the dependencies of its newest version."""
    print("\n" + "="*60)
    print("Example 2: Package details")
    print("="*60)

    response = await get_package(registry, SOURCE, "Newtonsoft.Json")
    if response.is_failure:
        print(response.error)
        return

    newest = response.package.versions[0]
    print(f"Newest version: {newest.version}")
    details = await registry.get(SOURCE).get_package_details(newest.id)
    for framework, dependencies in details.frameworks.items():
        print(f"{framework}: {', '.join(d.package for d in dependencies) or '-'}")


async def example_projects(registry: FeedRegistry):
    """Example: Aggregate the projects of a workspace and check for updates."""
    print("\n" + "="*60)
    print("Example 3: Workspace projects")
    print("="*60)

    aggregator = ProjectAggregator(GlobFileDiscovery(Path(".")))
    projects = await aggregator.get_projects()
    for project in projects:
        print(f"{project.name}: {len(project.packages)} packages")

    print(f"Saved to {export_projects_csv(projects, Path('./output/example3'))}")
    outdated = await find_outdated(projects, registry.get(SOURCE))
    print(outdated.to_string(index=False))


async def main():
    async with FeedRegistry("{user-profile}/.nuget/plugins/netcore/CredentialProvider.Microsoft") as registry:
        await example_search(registry)
        await example_package(registry)
        await example_projects(registry)


if __name__ == "__main__":
    asyncio.run(main())
