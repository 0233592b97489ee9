"""
Parse package references out of MSBuild project and props files.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import ProjectParseError
from .models import Project, ProjectPackage, PropsEntry, PropsKind


logger = logging.getLogger(__name__)

PACKAGE_REFERENCE = "PackageReference"
PACKAGE_VERSION = "PackageVersion"


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _load(path: str) -> ET.Element:
    with open(path, "r", encoding="utf-8-sig") as f:
        content = f.read()
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise ProjectParseError(path, str(e)) from e


def _item_group_elements(root: ET.Element, kinds: Tuple[str, ...]) -> Iterator[ET.Element]:
    """Yield elements of the given kinds that sit directly under an ItemGroup."""
    for element in root.iter():
        if _local(element.tag) != "ItemGroup":
            continue
        for child in element:
            if _local(child.tag) in kinds:
                yield child


def _read_package(path: str, element: ET.Element) -> ProjectPackage:
    package_id = element.get("Include")
    if package_id is None:
        raise ProjectParseError(path, f"{_local(element.tag)} without an Include attribute")

    version: Optional[str] = element.get("Version")
    if version is None:
        for child in element:
            if _local(child.tag) == "Version":
                version = (child.text or "").strip() or None
                break
    return ProjectPackage(id=package_id, version=version)


def apply_version_table(package: ProjectPackage, version_table: Dict[str, str]) -> ProjectPackage:
    """Fill a missing version from the table; never override a declared one."""
    if package.version:
        return package
    return dataclasses.replace(package, version=version_table.get(package.id) or "")


def parse_project(path: str, version_table: Dict[str, str]) -> Project:
    """Parse a project file, resolving versions against ``version_table``.

    Raises:
        ProjectParseError: If the file is not XML or a reference has no Include.
    """
    root = _load(path)
    packages: List[ProjectPackage] = []
    for element in _item_group_elements(root, (PACKAGE_REFERENCE,)):
        packages.append(apply_version_table(_read_package(path, element), version_table))

    logger.debug("Parsed %d package references from %s", len(packages), path)
    return Project(path=path, name=os.path.basename(path), packages=packages)


def parse_props(path: str) -> List[PropsEntry]:
    """Parse the package references and version declarations of a props file.

    Raises:
        ProjectParseError: If the file is not XML or an element has no Include.
    """
    root = _load(path)
    entries = []
    for element in _item_group_elements(root, (PACKAGE_REFERENCE, PACKAGE_VERSION)):
        kind = PropsKind.REFERENCE if _local(element.tag) == PACKAGE_REFERENCE else PropsKind.VERSION
        entries.append(PropsEntry(kind=kind, package=_read_package(path, element)))

    logger.debug("Parsed %d entries from %s", len(entries), path)
    return entries
