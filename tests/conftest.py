"""Shared fixtures and feed builders."""

import pytest


FEED_HEADER = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<feed xml:base="https://feed.example/api/v2" '
    'xmlns="http://www.w3.org/2005/Atom" '
    'xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices" '
    'xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">'
    '<title type="text">Packages</title>'
)


def make_entry(
    title,
    version="1.0.0",
    entry_id=None,
    link=None,
    downloads="42",
    dependencies=None,
    description="A package",
):
    parts = ["<entry>"]
    parts.append(f"<id>{entry_id or f'https://feed.example/api/v2/Packages({title},{version})'}</id>")
    parts.append(f'<title type="text">{title}</title>')
    parts.append("<author><name>Contoso</name></author>")
    if link:
        parts.append(f'<link rel="edit" href="{link}" />')
    parts.append("<m:properties>")
    if version is not None:
        parts.append(f"<d:Version>{version}</d:Version>")
    if description is not None:
        parts.append(f"<d:Description>{description}</d:Description>")
    if downloads is not None:
        parts.append(f'<d:DownloadCount m:type="Edm.Int32">{downloads}</d:DownloadCount>')
    if dependencies is not None:
        parts.append(f"<d:Dependencies>{dependencies}</d:Dependencies>")
    parts.append("</m:properties>")
    parts.append("</entry>")
    return "".join(parts)


def make_feed(*entries):
    return FEED_HEADER + "".join(entries) + "</feed>"


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    for name in ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy"):
        monkeypatch.delenv(name, raising=False)
