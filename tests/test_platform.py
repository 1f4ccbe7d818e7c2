"""Tests for platform detection and asset matching."""

from __future__ import annotations

import pytest

from pandock.domain import ToolKind
from pandock.platform import (
    DEFAULT_PATTERNS,
    asset_patterns,
    current_download_config,
    executable_name,
    get_current_platform,
)


@pytest.mark.parametrize(
    ("sys_platform", "machine", "expected"),
    [
        ("linux", "x86_64", ("linux", "x86_64")),
        ("linux", "aarch64", ("linux", "aarch64")),
        ("darwin", "arm64", ("macos", "aarch64")),
        ("darwin", "x86_64", ("macos", "x86_64")),
        ("win32", "AMD64", ("windows", "x86_64")),
        ("win32", "x86_64", ("windows", "x86_64")),
    ],
)
def test_get_current_platform(
    sys_platform: str,
    machine: str,
    expected: tuple[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("pandock.platform.sys.platform", sys_platform)
    monkeypatch.setattr("pandock.platform.platform.machine", lambda: machine)
    assert get_current_platform() == expected


def test_unknown_platform_passes_through(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pandock.platform.sys.platform", "freebsd14")
    monkeypatch.setattr("pandock.platform.platform.machine", lambda: "MIPS")
    assert get_current_platform() == ("freebsd14", "mips")


def test_current_download_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pandock.platform.sys.platform", "darwin")
    monkeypatch.setattr("pandock.platform.platform.machine", lambda: "arm64")
    config = current_download_config(use_mirrors=False)
    assert (config.target_os, config.target_arch, config.use_mirrors) == ("macos", "aarch64", False)


@pytest.mark.parametrize(
    ("target_os", "target_arch", "expected"),
    [
        ("windows", "x86_64", ["windows-x86_64.zip"]),
        ("macos", "aarch64", ["arm64-macOS.zip", "macOS.zip"]),
        ("macos", "x86_64", ["x86_64-macOS.zip", "macOS.zip"]),
        ("linux", "aarch64", ["linux-arm64.tar.gz"]),
        ("linux", "x86_64", ["linux-amd64.tar.gz"]),
        ("windows", "aarch64", ["windows-x86_64.zip"]),
        ("macos", "riscv64", ["macOS.zip"]),
        ("freebsd", "x86_64", DEFAULT_PATTERNS[ToolKind.CONVERTER]),
    ],
)
def test_converter_asset_patterns(target_os: str, target_arch: str, expected: list[str]) -> None:
    assert asset_patterns(ToolKind.CONVERTER, target_os, target_arch) == expected


@pytest.mark.parametrize(
    ("target_os", "target_arch", "expected"),
    [
        ("windows", "x86_64", "x86_64-pc-windows-msvc"),
        ("windows", "aarch64", "aarch64-pc-windows-msvc"),
        ("macos", "x86_64", "x86_64-apple-darwin"),
        ("macos", "aarch64", "aarch64-apple-darwin"),
        ("linux", "x86_64", "x86_64-unknown-linux-musl"),
        ("linux", "aarch64", "aarch64-unknown-linux-musl"),
        ("haiku", "sparc", "x86_64-unknown-linux-musl"),
    ],
)
def test_typesetter_asset_patterns(target_os: str, target_arch: str, expected: str) -> None:
    assert asset_patterns(ToolKind.TYPESETTER, target_os, target_arch)[0] == expected


def test_asset_patterns_are_never_empty() -> None:
    for kind in ToolKind:
        for target_os in ("windows", "macos", "linux", "plan9"):
            for target_arch in ("x86_64", "aarch64", "s390x"):
                assert asset_patterns(kind, target_os, target_arch)


def test_asset_patterns_returns_a_copy() -> None:
    patterns = asset_patterns(ToolKind.CONVERTER, "linux", "x86_64")
    patterns.append("junk")
    assert asset_patterns(ToolKind.CONVERTER, "linux", "x86_64") == ["linux-amd64.tar.gz"]


def test_linux_amd64_pattern_first() -> None:
    assert "linux-amd64" in asset_patterns(ToolKind.CONVERTER, "linux", "x86_64")[0]


@pytest.mark.parametrize(
    ("kind", "target_os", "expected"),
    [
        (ToolKind.CONVERTER, "windows", "pandoc.exe"),
        (ToolKind.CONVERTER, "linux", "pandoc"),
        (ToolKind.TYPESETTER, "windows", "typst.exe"),
        (ToolKind.TYPESETTER, "macos", "typst"),
    ],
)
def test_executable_name(kind: ToolKind, target_os: str, expected: str) -> None:
    assert executable_name(kind, target_os) == expected
