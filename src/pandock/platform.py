"""Platform detection and release asset matching for pandock."""

from __future__ import annotations

import platform
import sys

from pandock.domain import DownloadConfig, ToolKind
from pandock.tools import tool_spec

_OS_MAP: dict[str, str] = {
    "win32": "windows",
    "cygwin": "windows",
    "linux": "linux",
    "darwin": "macos",
}

_ARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

# Upstream asset names look like 'pandoc-3.7.0.2-linux-amd64.tar.gz' and 'typst-x86_64-unknown-linux-musl.tar.xz'.
_ASSET_PATTERNS: dict[ToolKind, dict[tuple[str, str], list[str]]] = {
    ToolKind.CONVERTER: {
        ("windows", "x86_64"): ["windows-x86_64.zip"],
        ("macos", "aarch64"): ["arm64-macOS.zip", "macOS.zip"],
        ("macos", "x86_64"): ["x86_64-macOS.zip", "macOS.zip"],
        ("linux", "aarch64"): ["linux-arm64.tar.gz"],
        ("linux", "x86_64"): ["linux-amd64.tar.gz"],
    },
    ToolKind.TYPESETTER: {
        ("windows", "x86_64"): ["x86_64-pc-windows-msvc"],
        ("windows", "aarch64"): ["aarch64-pc-windows-msvc"],
        ("macos", "aarch64"): ["aarch64-apple-darwin"],
        ("macos", "x86_64"): ["x86_64-apple-darwin"],
        ("linux", "aarch64"): ["aarch64-unknown-linux-musl"],
        ("linux", "x86_64"): ["x86_64-unknown-linux-musl"],
    },
}

# Used when only the OS is known.
_OS_FALLBACK_PATTERNS: dict[ToolKind, dict[str, list[str]]] = {
    ToolKind.CONVERTER: {
        "windows": ["windows-x86_64.zip"],
        "macos": ["macOS.zip"],
    },
    ToolKind.TYPESETTER: {
        "windows": ["x86_64-pc-windows-msvc"],
        "macos": ["x86_64-apple-darwin"],
    },
}

#: Best-effort guess for platforms nobody mapped: the Linux x86_64 build.
DEFAULT_PATTERNS: dict[ToolKind, list[str]] = {
    ToolKind.CONVERTER: ["linux-amd64.tar.gz"],
    ToolKind.TYPESETTER: ["x86_64-unknown-linux-musl"],
}


def get_current_platform() -> tuple[str, str]:
    """
    Return the current ``(os, arch)`` using pandock naming conventions.

    Unrecognized values are returned lower-cased as reported by the interpreter so that
    :func:`asset_patterns` can fall back to its default entry.
    """
    raw_os = sys.platform
    raw_arch = platform.machine().lower()
    return _OS_MAP.get(raw_os, raw_os.lower()), _ARCH_MAP.get(raw_arch, raw_arch)


def current_download_config(use_mirrors: bool = True) -> DownloadConfig:
    """Build the download configuration for the running platform."""
    target_os, target_arch = get_current_platform()
    return DownloadConfig(target_os=target_os, target_arch=target_arch, use_mirrors=use_mirrors)


def asset_patterns(kind: ToolKind, target_os: str, target_arch: str) -> list[str]:
    """
    Return the asset-name substrings acceptable for the platform, most specific first.

    Never fails: unknown architectures fall back to the OS entry and unknown
    operating systems to :data:`DEFAULT_PATTERNS`.
    """
    exact = _ASSET_PATTERNS[kind].get((target_os, target_arch))
    if exact:
        return list(exact)
    by_os = _OS_FALLBACK_PATTERNS[kind].get(target_os)
    if by_os:
        return list(by_os)
    return list(DEFAULT_PATTERNS[kind])


def executable_name(kind: ToolKind, target_os: str) -> str:
    """Return the executable file name of the tool on the given OS."""
    stem = tool_spec(kind).exe_stem
    return f"{stem}.exe" if target_os == "windows" else stem
