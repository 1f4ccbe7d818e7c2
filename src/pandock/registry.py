"""Release metadata lookup against the upstream release registry."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import requests
from py_app_dev.core.logging import logger

from pandock.domain import Asset, DownloadConfig, ReleaseMetadata, ToolKind
from pandock.errors import (
    HttpStatusError,
    NoMatchingAssetError,
    RegistryNetworkError,
    ReleaseNotFoundError,
    ReleaseParseError,
)
from pandock.tools import tool_spec

#: JSON mirror of the GitHub releases API that is reachable where api.github.com is not.
UNGH_API_BASE = "https://ungh.cc/repos"
GITHUB_DOWNLOAD_BASE = "https://github.com"
_REGISTRY_TIMEOUT = 60

_CONTENT_TYPES: dict[str, str] = {
    ".zip": "application/zip",
    ".tar.gz": "application/gzip",
    ".tar.xz": "application/x-xz",
    ".msi": "application/x-msi",
    ".pkg": "application/x-apple-diskimage",
}

# Release file names per tool; ``{tag}`` is the release tag. Installers are listed for
# completeness even though only archives can be extracted.
_ASSET_NAME_TEMPLATES: dict[ToolKind, tuple[str, ...]] = {
    ToolKind.CONVERTER: (
        "pandoc-{tag}-windows-x86_64.msi",
        "pandoc-{tag}-windows-x86_64.zip",
        "pandoc-{tag}-arm64-macOS.pkg",
        "pandoc-{tag}-arm64-macOS.zip",
        "pandoc-{tag}-x86_64-macOS.pkg",
        "pandoc-{tag}-x86_64-macOS.zip",
        "pandoc-{tag}-linux-amd64.tar.gz",
        "pandoc-{tag}-linux-arm64.tar.gz",
        "pandoc-{tag}.tar.gz",
    ),
    ToolKind.TYPESETTER: (
        "typst-x86_64-pc-windows-msvc.zip",
        "typst-aarch64-pc-windows-msvc.zip",
        "typst-aarch64-apple-darwin.tar.xz",
        "typst-x86_64-apple-darwin.tar.xz",
        "typst-x86_64-unknown-linux-musl.tar.xz",
        "typst-aarch64-unknown-linux-musl.tar.xz",
    ),
}


def _content_type(name: str) -> str:
    for ext, content_type in _CONTENT_TYPES.items():
        if name.endswith(ext):
            return content_type
    return "application/octet-stream"


def synthesize_assets(kind: ToolKind, tag: str) -> list[Asset]:
    """
    Build the asset list of a release from the well-known upstream download URL template.

    The size of synthesized assets is unknown and reported as 0.
    """
    base_url = f"{GITHUB_DOWNLOAD_BASE}/{tool_spec(kind).repo}/releases/download/{tag}"
    assets = []
    for template in _ASSET_NAME_TEMPLATES[kind]:
        name = template.format(tag=tag)
        assets.append(Asset(name=name, download_url=f"{base_url}/{name}", size=0, content_type=_content_type(name)))
    return assets


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring malformed release timestamp {value!r}")
        return None


def _parse_assets(raw_assets: list[Any]) -> list[Asset]:
    assets: list[Asset] = []
    seen: set[str] = set()
    for raw in raw_assets:
        if not isinstance(raw, dict):
            raise ReleaseParseError(f"Unexpected asset entry: {raw!r}")
        name = raw.get("name")
        url = raw.get("download_url") or raw.get("browser_download_url") or raw.get("downloadUrl")
        if not isinstance(name, str) or not isinstance(url, str):
            raise ReleaseParseError(f"Asset entry without name or download URL: {raw!r}")
        if name in seen:
            continue
        seen.add(name)
        try:
            size = int(raw.get("size") or 0)
        except (TypeError, ValueError) as exc:
            raise ReleaseParseError(f"Asset {name!r} has an invalid size: {raw.get('size')!r}") from exc
        assets.append(
            Asset(
                name=name,
                download_url=url,
                size=size,
                content_type=str(raw.get("content_type") or raw.get("contentType") or _content_type(name)),
            )
        )
    return assets


def parse_release(kind: ToolKind, data: Any) -> ReleaseMetadata:
    """
    Convert one release object of the registry API into :class:`ReleaseMetadata`.

    Raises:
        ReleaseParseError: If *data* is not a release object with a tag.

    """
    if not isinstance(data, dict):
        raise ReleaseParseError(f"Expected a release object, got {type(data).__name__}")
    tag = data.get("tag") or data.get("tag_name")
    if not isinstance(tag, str) or not tag:
        raise ReleaseParseError("Release object has no tag")
    raw_assets = data.get("assets")
    if isinstance(raw_assets, list) and raw_assets:
        assets = _parse_assets(raw_assets)
    else:
        assets = synthesize_assets(kind, tag)
    return ReleaseMetadata(
        tag=tag,
        display_name=str(data.get("name") or tag),
        notes=str(data.get("markdown") or data.get("body") or ""),
        published_at=_parse_timestamp(data.get("publishedAt") or data.get("published_at")),
        assets=assets,
    )


class ReleaseRegistry:
    """Client for the JSON release-listing API."""

    def __init__(
        self,
        session: requests.Session | None = None,
        api_base: str = UNGH_API_BASE,
        timeout: float = _REGISTRY_TIMEOUT,
    ) -> None:
        self.session = session or requests.Session()
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def _get_json(self, url: str) -> Any:
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RegistryNetworkError(f"Failed to fetch release info from {url}: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise HttpStatusError(url, response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ReleaseParseError(f"Failed to parse JSON from {url}: {exc}") from exc

    def latest_release(self, kind: ToolKind) -> ReleaseMetadata:
        """
        Fetch the latest release of a tool.

        Raises:
            RegistryNetworkError: On transport failures.
            HttpStatusError: On a non-2xx response.
            ReleaseParseError: If the response has no ``release`` object.

        """
        url = f"{self.api_base}/{tool_spec(kind).repo}/releases/latest"
        payload = self._get_json(url)
        release_data = payload.get("release") if isinstance(payload, dict) else None
        if release_data is None:
            raise ReleaseParseError(f"No release data found in response from {url}")
        return parse_release(kind, release_data)

    def releases(self, kind: ToolKind, limit: int = 10) -> list[ReleaseMetadata]:
        """
        Fetch up to *limit* releases of a tool, newest first as listed by the registry.

        Entries that cannot be parsed are skipped.

        Raises:
            RegistryNetworkError: On transport failures.
            HttpStatusError: On a non-2xx response.
            ReleaseParseError: If the response has no ``releases`` array.

        """
        url = f"{self.api_base}/{tool_spec(kind).repo}/releases"
        payload = self._get_json(url)
        releases_data = payload.get("releases") if isinstance(payload, dict) else None
        if not isinstance(releases_data, list):
            raise ReleaseParseError(f"No releases array found in response from {url}")
        result: list[ReleaseMetadata] = []
        for data in releases_data:
            if len(result) >= limit:
                break
            try:
                result.append(parse_release(kind, data))
            except ReleaseParseError as exc:
                logger.debug(f"Skipping release entry: {exc}")
        return result


def find_release(releases: Sequence[ReleaseMetadata], tag: str) -> ReleaseMetadata:
    """
    Return the release with exactly *tag*.

    Raises:
        ReleaseNotFoundError: If no release carries the tag.

    """
    for release in releases:
        if release.tag == tag:
            return release
    listed = ", ".join(release.tag for release in releases) or "none"
    raise ReleaseNotFoundError(f"Version {tag} not found. Available: {listed}")


def select_asset(release: ReleaseMetadata, patterns: Sequence[str], config: DownloadConfig) -> Asset:
    """
    Pick the first asset matching the platform patterns, trying patterns in order.

    Raises:
        NoMatchingAssetError: If no asset name contains any of the patterns.

    """
    for pattern in patterns:
        for asset in release.assets:
            if pattern in asset.name:
                return asset
    available = ", ".join(asset.name for asset in release.assets)
    raise NoMatchingAssetError(
        f"No compatible asset found for {config.target_os}-{config.target_arch} in release {release.tag}.\n"
        f"Available assets: {available}\n"
        f"Looked for patterns: {list(patterns)}"
    )
