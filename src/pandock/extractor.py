"""Archive extraction for pandock."""

from __future__ import annotations

import io
import lzma
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from pathlib import Path

from py_app_dev.core.logging import logger

from pandock.errors import ExtractionError, UnsupportedFormatError
from pandock.progress import ProgressCallback

SUPPORTED_FORMATS: dict[str, str] = {
    ".zip": "zip",
    ".tar.gz": "tar:gz",
    ".tgz": "tar:gz",
    ".tar.xz": "tar:xz",
    ".txz": "tar:xz",
}

ArchiveSource = Path | bytes


def detect_format(name: str) -> str:
    """
    Return the format key for an archive file name or download URL.

    Raises:
        UnsupportedFormatError: If the extension is not one of :data:`SUPPORTED_FORMATS`.

    """
    lowered = name.split("?", 1)[0].split("#", 1)[0].rstrip("/").lower()
    for ext, fmt in SUPPORTED_FORMATS.items():
        if lowered.endswith(ext):
            return fmt
    supported = ", ".join(sorted(SUPPORTED_FORMATS))
    raise UnsupportedFormatError(f"Unsupported archive format: {Path(lowered).name or name}. Supported: {supported}")


def _validate_entry_paths(names: list[str], dest_dir: Path) -> None:
    """Reject archive entries that would escape *dest_dir* via path traversal."""
    resolved_dest = dest_dir.resolve()
    for name in names:
        target = (dest_dir / name).resolve()
        if not target.is_relative_to(resolved_dest):
            raise ExtractionError(f"Path traversal detected in archive entry: {name!r}")


def _unpack_zip(
    archive: zipfile.ZipFile,
    dest_dir: Path,
    progress_callback: ProgressCallback | None,
    label: str,
) -> None:
    members = archive.infolist()
    _validate_entry_paths([member.filename for member in members], dest_dir)
    total = len(members)
    for idx, member in enumerate(members, 1):
        out_path = dest_dir / member.filename
        if member.filename.endswith("/"):
            out_path.mkdir(parents=True, exist_ok=True)
        else:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(member) as src, out_path.open("wb") as dst:
                shutil.copyfileobj(src, dst)
        # Zip has no portable permission field; Unix tools store st_mode in the high bits.
        mode = stat.S_IMODE(member.external_attr >> 16)
        if mode and os.name == "posix":
            out_path.chmod(mode)
        if progress_callback:
            progress_callback(label, idx, total)


def _unpack_tar(
    archive: tarfile.TarFile,
    dest_dir: Path,
    progress_callback: ProgressCallback | None,
    label: str,
) -> None:
    members = archive.getmembers()
    total = len(members)
    if not hasattr(tarfile, "data_filter"):
        _validate_entry_paths([member.name for member in members], dest_dir)
    for idx, member in enumerate(members, 1):
        if hasattr(tarfile, "data_filter"):
            archive.extract(member, dest_dir, filter="data")
        else:
            archive.extract(member, dest_dir)  # noqa: S202
        if progress_callback:
            progress_callback(label, idx, total)


def _read_source(source: ArchiveSource) -> bytes:
    return source if isinstance(source, bytes) else source.read_bytes()


def _unpack(
    source: ArchiveSource,
    fmt: str,
    dest_dir: Path,
    progress_callback: ProgressCallback | None,
    label: str,
) -> None:
    """Unpack *source* of format *fmt* into an empty *dest_dir*."""
    if fmt == "zip":
        zip_file = io.BytesIO(source) if isinstance(source, bytes) else source
        with zipfile.ZipFile(zip_file) as zf:
            _unpack_zip(zf, dest_dir, progress_callback, label)
    elif fmt == "tar:gz":
        if isinstance(source, bytes):
            archive = tarfile.open(fileobj=io.BytesIO(source), mode="r:gz")
        else:
            archive = tarfile.open(source, mode="r:gz")
        with archive as tf:
            _unpack_tar(tf, dest_dir, progress_callback, label)
    elif fmt == "tar:xz":
        # The whole XZ stream is decompressed up front, then unpacked as a plain tar.
        tar_bytes = lzma.decompress(_read_source(source), format=lzma.FORMAT_XZ)
        with tarfile.open(fileobj=io.BytesIO(tar_bytes), mode="r:") as tf:
            _unpack_tar(tf, dest_dir, progress_callback, label)
    else:
        raise UnsupportedFormatError(f"Unsupported archive format key: {fmt}")


def _merge_tree(src: Path, dst: Path) -> None:
    """Move everything from *src* into *dst*, replacing files and merging directories."""
    for item in sorted(src.iterdir()):
        target = dst / item.name
        if item.is_dir() and not item.is_symlink() and target.is_dir() and not target.is_symlink():
            _merge_tree(item, target)
            continue
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        os.replace(item, target)


_UNPACK_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    EOFError,
    zipfile.BadZipFile,
    tarfile.TarError,
    lzma.LZMAError,
)


def extract_archive(
    source: ArchiveSource,
    dest_dir: Path,
    format_hint: str | None = None,
    progress_callback: ProgressCallback | None = None,
    label: str = "",
) -> Path:
    """
    Extract an archive into *dest_dir* and return *dest_dir*.

    The archive is first unpacked into a staging directory inside *dest_dir*. Only after
    that succeeds are its entries moved over the existing contents, so a broken archive
    leaves *dest_dir* untouched and a repeated extraction fully overwrites the previous one.

    Args:
        source: Archive file path or the archive bytes.
        dest_dir: Target directory, created if missing.
        format_hint: File name or URL used to detect the format. Required for bytes.
        progress_callback: Optional callback invoked once per extracted entry.
        label: Name passed to the progress callback.

    Raises:
        UnsupportedFormatError: If the format is not zip, tar.gz or tar.xz.
        ExtractionError: On archive corruption, path traversal or filesystem errors.

    """
    if format_hint is None:
        if isinstance(source, bytes):
            raise UnsupportedFormatError("Cannot detect the format of in-memory archive data without a format hint")
        format_hint = source.name
    fmt = detect_format(format_hint)
    logger.info(f"Extracting {format_hint} into {dest_dir}")
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".pandock-extract-", dir=dest_dir))
    except OSError as exc:
        raise ExtractionError(f"Failed to create extraction directory {dest_dir}: {exc}") from exc
    try:
        _unpack(source, fmt, staging, progress_callback, label)
        _merge_tree(staging, dest_dir)
    except _UNPACK_ERRORS as exc:
        raise ExtractionError(f"Failed to extract {format_hint}: {exc}") from exc
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return dest_dir

