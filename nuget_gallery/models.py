"""
Core data models for feed and project records.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class VersionRef:
    """A known version of a package and the feed identifier it lives at."""

    version: str
    id: str


@dataclass(frozen=True)
class Package:
    """A package entry decoded from a feed."""

    id: str
    name: str
    authors: List[str] = field(default_factory=list)
    description: str = ""
    icon_url: str = ""
    license_url: str = ""
    project_url: str = ""
    total_downloads: int = 0
    verified: bool = False
    version: str = ""
    versions: List[VersionRef] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Dependency:
    """A dependency as declared by a package version."""

    package: str
    version_range: str


@dataclass(frozen=True)
class PackageDetails:
    """Dependencies of a package version grouped by target framework."""

    frameworks: Dict[str, List[Dependency]] = field(default_factory=dict)


@dataclass(frozen=True)
class Credentials:
    """Username/password pair returned by the credential provider."""

    username: str
    password: str

    @property
    def token(self) -> str:
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")


@dataclass(frozen=True)
class ProjectPackage:
    """A package referenced by a project.

    ``version`` is ``None`` only while parsing; once the version table has
    been applied an unresolved version is the empty string.
    """

    id: str
    version: Optional[str] = None


@dataclass(frozen=True)
class Project:
    """A project file and the packages it references."""

    path: str
    name: str
    packages: List[ProjectPackage] = field(default_factory=list)


class PropsKind(IntEnum):
    """Element kind of a central-versions declaration."""

    REFERENCE = 1
    VERSION = 2


@dataclass(frozen=True)
class PropsEntry:
    """A ``PackageReference`` or ``PackageVersion`` read from a props file."""

    kind: PropsKind
    package: ProjectPackage


@dataclass(frozen=True)
class PackageResult:
    """Outcome of a single-package lookup against one feed."""

    package: Optional[Package] = None
    is_error: bool = False
    error_message: Optional[str] = None


@dataclass(frozen=True)
class GetPackageResponse:
    """Outcome of a package lookup across one or more sources."""

    is_failure: bool
    package: Optional[Package] = None
    error: Optional[str] = None
