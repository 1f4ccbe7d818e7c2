"""Candidate executable locations and validation."""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from pathlib import Path, PurePath, PurePosixPath, PureWindowsPath

from py_app_dev.core.logging import logger

from pandock.domain import ToolKind
from pandock.errors import ExecutionFailedError
from pandock.platform import executable_name, get_current_platform
from pandock.process import ProcessRunner
from pandock.tools import tool_spec

VERSION_PROBE_ARGS: tuple[str, ...] = ("--version",)


def _dedupe(paths: list[str]) -> list[str]:
    return list(dict.fromkeys(paths))


def find_in_directory(base_dir: Path, exe_name: str) -> Path | None:
    """
    Find *exe_name* inside *base_dir*.

    Checks ``base_dir/exe``, ``base_dir/bin/exe`` and then the same two placements in
    every direct subdirectory, as upstream archives may or may not unpack into a
    version-named folder. Subdirectories are visited in name order; first match wins.
    """
    if not base_dir.is_dir():
        return None
    for candidate in (base_dir / exe_name, base_dir / "bin" / exe_name):
        if candidate.is_file():
            return candidate
    for entry in sorted(base_dir.iterdir()):
        if not entry.is_dir():
            continue
        for candidate in (entry / exe_name, entry / "bin" / exe_name):
            if candidate.is_file():
                return candidate
    return None


class ToolLocator:
    """Enumerates and validates candidate locations of a tool executable."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        target_os: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the locator.

        Args:
            runner: Process runner used for version probes.
            target_os: OS whose install conventions are searched, the running one by default.
            environ: Environment snapshot (``PATH``, ``HOME``, ``USERPROFILE``, ...). Read once,
                never written. Defaults to a copy of the process environment.

        """
        self.runner = runner or ProcessRunner()
        self.target_os = target_os or get_current_platform()[0]
        self.environ: dict[str, str] = dict(os.environ if environ is None else environ)

    def _path_type(self) -> type[PurePath]:
        return PureWindowsPath if self.target_os == "windows" else PurePosixPath

    def path_lookup(self, kind: ToolKind) -> str | None:
        """Return the first match of the executable on ``PATH``."""
        search_path = self.environ.get("PATH")
        if not search_path:
            return None
        return shutil.which(executable_name(kind, self.target_os), path=search_path)

    def common_paths(self, kind: ToolKind) -> list[str]:
        """Well-known install locations of the tool on the target OS."""
        spec = tool_spec(kind)
        exe = executable_name(kind, self.target_os)
        path_type = self._path_type()
        candidates: list[PurePath] = []
        if self.target_os == "windows":
            profile = self.environ.get("USERPROFILE")
            if profile:
                base = path_type(profile)
                candidates += [
                    base / "AppData" / "Roaming" / spec.exe_stem / exe,
                    base / "AppData" / "Local" / spec.exe_stem / exe,
                    base / "AppData" / "Local" / spec.install_dir_name / exe,
                    base / "scoop" / "apps" / spec.exe_stem / "current" / exe,
                    base / ".cargo" / "bin" / exe,
                ]
            candidates += [
                path_type("C:\\Program Files") / spec.install_dir_name / exe,
                path_type("C:\\Program Files (x86)") / spec.install_dir_name / exe,
            ]
            chocolatey = self.environ.get("ChocolateyInstall")
            if chocolatey:
                candidates.append(path_type(chocolatey) / "bin" / exe)
            conda = self.environ.get("CONDA_PREFIX")
            if conda:
                candidates += [path_type(conda) / "Scripts" / exe, path_type(conda) / "bin" / exe]
        else:
            home = self.environ.get("HOME")
            home_dirs = [".local/bin", ".cabal/bin", ".cargo/bin"]
            if self.target_os == "macos":
                system_dirs = ["/usr/local/bin", "/opt/homebrew/bin"]
                home_dirs.insert(0, "Library/Haskell/bin")
                trailing_dirs = ["/usr/bin"]
            else:
                system_dirs = ["/usr/bin", "/usr/local/bin"]
                trailing_dirs = ["/snap/bin"]
            candidates += [path_type(directory) / exe for directory in system_dirs]
            if home:
                candidates += [path_type(home) / directory / exe for directory in home_dirs]
            candidates += [path_type(directory) / exe for directory in trailing_dirs]
            conda = self.environ.get("CONDA_PREFIX")
            if conda:
                candidates.append(path_type(conda) / "bin" / exe)
        return _dedupe([str(candidate) for candidate in candidates])

    def search_paths(self, kind: ToolKind) -> list[str]:
        """
        Return the ordered system search paths of a tool.

        The ``PATH`` match comes first (if any), followed by the well-known install
        locations that are not already listed.
        """
        paths: list[str] = []
        on_path = self.path_lookup(kind)
        if on_path:
            paths.append(on_path)
        return _dedupe(paths + self.common_paths(kind))

    def validate(self, path: str | Path) -> bool:
        """Return True if *path* exists and answers the version probe with exit status 0."""
        candidate = Path(path)
        try:
            if not candidate.exists():
                return False
            return self.runner.run([str(candidate), *VERSION_PROBE_ARGS]).ok
        except (ExecutionFailedError, OSError) as exc:
            logger.debug(f"Version probe of {candidate} failed: {exc}")
            return False

    def is_executable(self, path: str | Path) -> bool:
        """Cheap pre-check used during discovery before the version probe."""
        candidate = Path(path)
        try:
            if not candidate.is_file():
                return False
        except OSError:
            return False
        if self.target_os == "windows":
            return candidate.suffix.lower() == ".exe"
        return os.access(candidate, os.X_OK)

    def find_first_valid(self, kind: ToolKind) -> str | None:
        """Return the first search path that validates, preserving search order."""
        for path in self.search_paths(kind):
            if self.validate(path):
                return path
        return None

    def find_all_valid(self, kind: ToolKind) -> list[str]:
        """Return every search path that validates, in search order."""
        return [path for path in self.search_paths(kind) if self.validate(path)]

    def managed_path(self, kind: ToolKind, resource_dir: Path, app_data_dir: Path) -> Path | None:
        """
        Locate the managed copy of a tool.

        The bundled resource directory is searched before the per-user portable directory.
        """
        spec = tool_spec(kind)
        exe = executable_name(kind, self.target_os)
        for root in (resource_dir / spec.resource_subdir, app_data_dir / spec.portable_subdir):
            found = find_in_directory(root, exe)
            if found:
                return found
        return None
