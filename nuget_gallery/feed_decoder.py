"""
Decode NuGet V2 (OData/Atom) feed documents into package records.

Element lookups match on local names, so feeds that declare the Atom,
metadata (``m:``) and dataservices (``d:``) namespaces decode the same way
as feeds that leave them undeclared.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Optional, Tuple

from .models import Dependency, Package, PackageDetails


logger = logging.getLogger(__name__)


def _to_int(value: str) -> int:
    try:
        return max(int(value.strip()), 0)
    except ValueError:
        return 0


def _to_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _to_tags(value: str) -> List[str]:
    return value.split()


# Package field -> (property element, default, converter for present text).
_PROPERTY_DEFAULTS: Dict[str, Tuple[str, object, Callable[[str], object]]] = {
    "description": ("Description", "", str),
    "icon_url": ("IconUrl", "", str),
    "license_url": ("LicenseUrl", "", str),
    "project_url": ("ProjectUrl", "", str),
    "total_downloads": ("DownloadCount", 0, _to_int),
    "version": ("Version", "", str),
    "tags": ("Tags", [], _to_tags),
}


def _local(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[1]
    if ":" in tag:
        return tag.rsplit(":", 1)[1]
    return tag


def _child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: Optional[ET.Element], name: str) -> List[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _local(child.tag) == name]


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _entries(root: ET.Element) -> List[ET.Element]:
    """Return the entries of a feed document.

    A document whose root is a single ``entry`` is treated as a feed of one.
    """
    if _local(root.tag) == "entry":
        return [root]
    return _children(root, "entry")


def _decode_entry(entry: ET.Element, source_url: str) -> Package:
    properties = _child(entry, "properties")

    package_id = _text(_child(entry, "id")) or ""
    hrefs = [link.get("href") for link in _children(entry, "link") if link.get("href")]
    if hrefs:
        package_id = f"{source_url}/{hrefs[0]}"

    author_name = _text(_child(_child(entry, "author"), "name"))
    verified = _text(_child(entry, "verified")) or _text(_child(properties, "IsVerified"))

    fields: Dict[str, object] = {}
    for name, (element, default, convert) in _PROPERTY_DEFAULTS.items():
        value = _text(_child(properties, element))
        if value is None:
            fields[name] = list(default) if isinstance(default, list) else default
        else:
            fields[name] = convert(value)

    return Package(
        id=package_id,
        name=_text(_child(entry, "title")) or "",
        authors=[author_name] if author_name else [],
        verified=_to_bool(verified) if verified else False,
        **fields,
    )


def decode_packages(xml: str, source_url: str) -> List[Package]:
    """Decode every entry of a feed, in document order.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not well-formed.
    """
    root = ET.fromstring(xml)
    return [_decode_entry(entry, source_url) for entry in _entries(root)]


def decode_versions(xml: str) -> List[str]:
    """Return the version of every entry that declares a non-empty one."""
    root = ET.fromstring(xml)
    versions = []
    for entry in _entries(root):
        version = _text(_child(_child(entry, "properties"), "Version"))
        if version:
            versions.append(version)
    return versions


def parse_dependencies(value: str) -> PackageDetails:
    """Parse a ``id:range:framework|...`` dependency string.

    Missing segments decode as empty strings. Frameworks keep the order in
    which they are first seen.
    """
    frameworks: Dict[str, List[Dependency]] = {}
    for triple in value.split("|"):
        if not triple.strip():
            continue
        parts = triple.split(":")
        parts += [""] * (3 - len(parts))
        package, version_range, framework = parts[0], parts[1], parts[2]
        frameworks.setdefault(framework, []).append(
            Dependency(package=package, version_range=version_range)
        )
    return PackageDetails(
        frameworks={name: deps for name, deps in frameworks.items() if deps}
    )


def decode_package_details(xml: str) -> PackageDetails:
    """Decode the dependencies of a single-entry payload.

    Never raises: a malformed document or a missing dependency field yields
    empty details.
    """
    try:
        root = ET.fromstring(xml)
        entries = _entries(root)
        if not entries:
            raise ValueError("payload has no entry")
        properties = _child(entries[0], "properties")
        dependencies = _child(properties, "Dependencies")
        if dependencies is None:
            raise ValueError("entry has no Dependencies field")
        return parse_dependencies(dependencies.text or "")
    except (ET.ParseError, ValueError) as e:
        logger.debug("Could not decode package details: %s", e)
        return PackageDetails()
