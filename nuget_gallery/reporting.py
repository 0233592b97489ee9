"""
Reporting and export utilities.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Iterable, List, Tuple

import pandas as pd
from packaging import version as pkg_version
from tqdm.asyncio import tqdm_asyncio

from .errors import NuGetGalleryError
from .interfaces import FeedClient
from .models import Project


logger = logging.getLogger(__name__)

PROJECT_COLUMNS = ["project", "path", "package", "version"]
OUTDATED_COLUMNS = ["package", "current", "latest", "outdated"]


def version_key(value: str) -> Tuple:
    """Sort key for NuGet versions; non-PEP 440 strings sort below valid ones."""
    try:
        return (1, pkg_version.parse(value))
    except pkg_version.InvalidVersion:
        return (0, value)


def projects_to_frame(projects: Iterable[Project]) -> pd.DataFrame:
    rows = [
        {
            "project": project.name,
            "path": project.path,
            "package": package.id,
            "version": package.version or "",
        }
        for project in projects
        for package in project.packages
    ]
    return pd.DataFrame(rows, columns=PROJECT_COLUMNS)


def print_summary(projects: List[Project]) -> None:
    logger.info("=" * 60)
    logger.info("PROJECTS")
    logger.info("=" * 60)
    for project in projects:
        logger.info("%s (%d packages)", project.name, len(project.packages))
        for package in project.packages:
            logger.info("  %s %s", package.id, package.version or "<unresolved>")
    logger.info("=" * 60)


def export_projects_csv(projects: Iterable[Project], output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_file = output_dir / "projects.csv"
    projects_to_frame(projects).to_csv(csv_file, index=False)
    return csv_file


def save_projects_json(projects: Iterable[Project], output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    json_file = output_dir / "projects.json"
    with open(json_file, "w") as f:
        json.dump([dataclasses.asdict(p) for p in projects], f, indent=2)
    return json_file


async def _versions_or_empty(feed: FeedClient, package_id: str) -> List[str]:
    try:
        return await feed.get_versions(package_id)
    except NuGetGalleryError as e:
        logger.warning("Could not fetch versions for %s: %s", package_id, e)
        return []


async def find_outdated(projects: Iterable[Project], feed: FeedClient) -> pd.DataFrame:
    """Compare every resolved package version with the newest one on ``feed``.

    Each package id is looked up once, using the first resolved version
    seen for it.
    """
    current = {}
    for project in projects:
        for package in project.packages:
            if package.version and package.id not in current:
                current[package.id] = package.version

    ids = list(current)
    all_versions = await tqdm_asyncio.gather(
        *(_versions_or_empty(feed, package_id) for package_id in ids),
        desc="Fetching versions",
        disable=not ids,
    )

    rows = []
    for package_id, versions in zip(ids, all_versions):
        if not versions:
            continue
        latest = max(versions, key=version_key)
        rows.append({
            "package": package_id,
            "current": current[package_id],
            "latest": latest,
            "outdated": version_key(latest) > version_key(current[package_id]),
        })
    return pd.DataFrame(rows, columns=OUTDATED_COLUMNS)


def export_outdated_csv(outdated: pd.DataFrame, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_file = output_dir / "outdated.csv"
    outdated.to_csv(csv_file, index=False)
    return csv_file
