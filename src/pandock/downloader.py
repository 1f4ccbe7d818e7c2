"""Asset downloading with mirror fallback for pandock."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from urllib.request import url2pathname

import requests
from py_app_dev.core.logging import logger

from pandock.domain import Asset, DownloadConfig
from pandock.errors import AllMirrorsFailedError, DownloadError
from pandock.progress import ProgressCallback

_CHUNK_SIZE = 8192
_DOWNLOAD_TIMEOUT = 60

#: URL prefixes tried in order. The empty prefix stands for the origin URL and is always last.
DOWNLOAD_MIRRORS: tuple[str, ...] = (
    "https://hub.gitmirror.com/",
    "https://gh.ddlc.top/",
    "",
)


def mirror_url(prefix: str, url: str) -> str:
    """Return *url* as served through the mirror *prefix*; an empty prefix keeps the origin URL."""
    return f"{prefix}{url}" if prefix else url


def _mirror_label(prefix: str) -> str:
    return prefix or "origin"


def download_file(
    url: str,
    dest: Path,
    session: requests.Session | None = None,
    label: str = "",
    progress_callback: ProgressCallback | None = None,
) -> Path:
    """
    Download the file at *url* to *dest*.

    Args:
        url: URL to download from. ``file://`` URLs are copied locally.
        dest: Local file path to write to. Parent directories are created.
        session: HTTP session, a fresh one when omitted.
        label: Name passed to the progress callback.
        progress_callback: Optional callback invoked on each chunk.

    Returns:
        The *dest* path.

    Raises:
        DownloadError: On a non-2xx status, network failure or write error. A partial
            file is removed before raising.

    """
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if url.startswith("file://"):
            _copy_local(Path(url2pathname(url[7:])), dest, label, progress_callback)
        else:
            _download_via_http(session or requests.Session(), url, dest, label, progress_callback)
    except (requests.RequestException, OSError) as exc:
        dest.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {exc}") from exc
    except DownloadError:
        dest.unlink(missing_ok=True)
        raise
    return dest


def _copy_local(src: Path, dest: Path, label: str, progress_callback: ProgressCallback | None) -> None:
    file_size = src.stat().st_size
    copied = 0
    with src.open("rb") as src_fh, dest.open("wb") as dst_fh:
        while chunk := src_fh.read(_CHUNK_SIZE):
            dst_fh.write(chunk)
            copied += len(chunk)
            if progress_callback:
                progress_callback(label, copied, file_size)


def _content_length(value: str | None) -> int | None:
    """Parse a ``Content-Length`` header; missing or malformed values mean unknown size."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Ignoring malformed Content-Length {value!r}")
        return None


def _download_via_http(
    session: requests.Session,
    url: str,
    dest: Path,
    label: str,
    progress_callback: ProgressCallback | None,
) -> None:
    with session.get(url, stream=True, timeout=_DOWNLOAD_TIMEOUT) as response:
        if not 200 <= response.status_code < 300:
            raise DownloadError(f"Download of {url} failed with status {response.status_code}")
        total = _content_length(response.headers.get("Content-Length"))
        downloaded = 0
        with dest.open("wb") as fh:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                fh.write(chunk)
                downloaded += len(chunk)
                if progress_callback:
                    progress_callback(label, downloaded, total)
    logger.info(f"Downloaded {dest} ({format_file_size(downloaded)})")


def download_asset(
    asset: Asset,
    target_dir: Path,
    config: DownloadConfig,
    session: requests.Session | None = None,
    mirrors: Sequence[str] = DOWNLOAD_MIRRORS,
    progress_callback: ProgressCallback | None = None,
) -> Path:
    """
    Download *asset* into ``target_dir / asset.name``.

    With ``config.use_mirrors`` every mirror prefix is tried in order, strictly one after
    the other, and the first complete download wins. Individual mirror failures are only
    logged.

    Raises:
        AllMirrorsFailedError: If every mirror failed.
        DownloadError: If mirrors are disabled and the origin download failed.

    """
    dest = target_dir / asset.name
    session = session or requests.Session()
    if not config.use_mirrors:
        return download_file(asset.download_url, dest, session, asset.name, progress_callback)

    if not mirrors or mirrors[-1] != "":
        mirrors = (*mirrors, "")
    attempted: list[str] = []
    for prefix in mirrors:
        url = mirror_url(prefix, asset.download_url)
        attempted.append(url)
        logger.info(f"Trying to download {asset.name} from {_mirror_label(prefix)}")
        try:
            return download_file(url, dest, session, asset.name, progress_callback)
        except DownloadError as exc:
            logger.warning(f"Mirror {_mirror_label(prefix)} failed: {exc}")
    raise AllMirrorsFailedError(asset.name, attempted)


def format_file_size(size: int) -> str:
    """Format a byte count for humans, e.g. ``1.5 MB``."""
    units = ("B", "KB", "MB", "GB")
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {units[unit]}"
