"""Error kinds raised by the tool resolution and provisioning engine."""

from __future__ import annotations

from py_app_dev.core.exceptions import UserNotificationException


class PandockError(UserNotificationException):
    """Base class for all pandock errors. Messages are meant to be shown to the user as-is."""


class ToolNotFoundError(PandockError):
    """No candidate source produced a working executable."""


class ExecutionFailedError(PandockError):
    """The executable exists but could not be spawned or its version probe failed."""


class RegistryNetworkError(PandockError):
    """Transport-level failure while talking to the release registry."""


class HttpStatusError(PandockError):
    """The server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Request to {url} failed with status {status_code}")
        self.url = url
        self.status_code = status_code


class ReleaseParseError(PandockError):
    """The registry response did not have the expected JSON shape."""


class ReleaseNotFoundError(PandockError):
    """The requested release tag is not listed by the registry."""


class UnsupportedPlatformError(PandockError):
    """No asset can be used on the target platform."""


class NoMatchingAssetError(UnsupportedPlatformError):
    """None of the release assets matches the platform asset patterns."""


class DownloadError(PandockError):
    """A single download attempt failed (bad status, transport or write error)."""


class AllMirrorsFailedError(DownloadError):
    """Every mirror, including the origin URL, failed to deliver the asset."""

    def __init__(self, asset_name: str, attempted_urls: list[str]) -> None:
        tried = "\n".join(f"- {url}" for url in attempted_urls)
        super().__init__(f"All download mirrors failed for {asset_name}. Tried:\n{tried}")
        self.asset_name = asset_name
        self.attempted_urls = attempted_urls


class UnsupportedFormatError(PandockError):
    """The archive extension is not one of the supported formats."""


class ExtractionError(PandockError):
    """Filesystem or archive failure while extracting."""
