"""
Aggregate package references across projects and central-versions files.
"""

from __future__ import annotations

import asyncio
import dataclasses
import fnmatch
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ProjectParseError
from .interfaces import FileDiscovery
from .models import Project, ProjectPackage, PropsEntry, PropsKind
from .project_parser import apply_version_table, parse_project, parse_props


logger = logging.getLogger(__name__)

PROPS_PATTERN = "**/Directory.*.props"
PROJECT_PATTERN = "**/*.{csproj,fsproj,vbproj}"
PROJECT_EXCLUDE = "**/node_modules/**"

# Errors that exclude a single file from an aggregation run.
_FILE_ERRORS = (ProjectParseError, OSError, ValueError)


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` alternatives in a glob pattern."""
    match = re.search(r"\{([^{}]*)\}", pattern)
    if not match:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end():]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


class GlobFileDiscovery:
    """Find workspace files below a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    async def find(self, pattern: str, exclude: Optional[str] = None) -> List[str]:
        return await asyncio.to_thread(self._find, pattern, exclude)

    def _find(self, pattern: str, exclude: Optional[str]) -> List[str]:
        found = set()
        for expanded in expand_braces(pattern):
            for path in self.root.glob(expanded):
                if not path.is_file():
                    continue
                relative = "/" + path.relative_to(self.root).as_posix()
                if exclude and fnmatch.fnmatch(relative, exclude):
                    continue
                found.add(str(path.resolve()))
        return sorted(found)


def build_version_table(entries: Iterable[PropsEntry]) -> Dict[str, str]:
    """Map package ids to their centrally declared version; last declaration wins."""
    table: Dict[str, str] = {}
    for entry in entries:
        if entry.kind == PropsKind.VERSION:
            table[entry.package.id] = entry.package.version or ""
    return table


class ProjectAggregator:
    """Build the project model of a workspace.

    Props files are parsed first so the version table is complete before
    any project consumes it. A file that cannot be parsed is logged and
    left out; the rest of the run continues.
    """

    def __init__(self, file_discovery: FileDiscovery) -> None:
        self.file_discovery = file_discovery

    async def discover_projects(self) -> List[str]:
        return await self.file_discovery.find(PROJECT_PATTERN, PROJECT_EXCLUDE)

    async def get_projects(self) -> List[Project]:
        return await self.aggregate(await self.discover_projects())

    async def load_props(self) -> List[PropsEntry]:
        """Parse every central-versions file, in discovery order."""
        props_files = await self.file_discovery.find(PROPS_PATTERN)
        results = await asyncio.gather(
            *(asyncio.to_thread(parse_props, path) for path in props_files),
            return_exceptions=True,
        )

        entries: List[PropsEntry] = []
        for path, result in zip(props_files, results):
            if isinstance(result, _FILE_ERRORS):
                logger.error("Skipping props file %s: %s", path, result)
                continue
            if isinstance(result, BaseException):
                raise result
            entries.extend(result)
        return entries

    async def aggregate(self, project_paths: Sequence[str]) -> List[Project]:
        entries = await self.load_props()
        version_table = build_version_table(entries)
        central_packages: List[ProjectPackage] = [
            apply_version_table(entry.package, version_table)
            for entry in entries
            if entry.kind == PropsKind.REFERENCE
        ]
        logger.info(
            "Loaded %d central versions and %d central references",
            len(version_table),
            len(central_packages),
        )

        results = await asyncio.gather(
            *(asyncio.to_thread(parse_project, path, version_table) for path in project_paths),
            return_exceptions=True,
        )

        projects: List[Project] = []
        for path, result in zip(project_paths, results):
            if isinstance(result, _FILE_ERRORS):
                logger.error("Skipping project %s: %s", path, result)
                continue
            if isinstance(result, BaseException):
                raise result
            projects.append(
                dataclasses.replace(result, packages=result.packages + central_packages)
            )

        return sorted(projects, key=lambda project: project.name.lower())
