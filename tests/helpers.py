"""Reusable test helpers for building archives, fake executables and HTTP doubles."""

from __future__ import annotations

import io
import tarfile
import threading
import zipfile
from collections.abc import Sequence
from pathlib import Path
from typing import Literal, cast
from unittest.mock import MagicMock

from pandock.domain import ToolKind
from pandock.errors import ExecutionFailedError
from pandock.locator import ToolLocator
from pandock.process import ProbeResult

ArchiveFormat = Literal["zip", "tar.gz", "tar.xz"]


def create_archive(
    base_dir: Path,
    files: dict[str, str],
    fmt: ArchiveFormat = "tar.gz",
    top_dir: str | None = None,
    modes: dict[str, int] | None = None,
    name: str = "archive",
) -> Path:
    """
    Create an archive with the given files.

    Args:
        base_dir: Directory where the archive file will be written.
        files: Mapping of filename → text content.
        fmt: Archive format, ``"zip"``, ``"tar.gz"`` or ``"tar.xz"``.
        top_dir: Optional top-level directory inside the archive.
        modes: Optional mapping of filename → permission bits stored in the archive.
        name: Archive file name without extension.

    Returns:
        The archive path.

    """
    base_dir.mkdir(parents=True, exist_ok=True)
    modes = modes or {}
    prefix = f"{top_dir}/" if top_dir else ""
    archive_path = base_dir / f"{name}.{fmt}"
    if fmt == "zip":
        with zipfile.ZipFile(archive_path, "w") as zf:
            for filename, content in files.items():
                info = zipfile.ZipInfo(f"{prefix}{filename}")
                info.external_attr = (0o100000 | modes.get(filename, 0o644)) << 16
                zf.writestr(info, content)
    else:
        mode = cast(Literal["w:gz", "w:xz"], f"w:{fmt.split('.')[1]}")
        with tarfile.open(archive_path, mode) as tf:
            for filename, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(name=f"{prefix}{filename}")
                info.size = len(data)
                info.mode = modes.get(filename, 0o644)
                tf.addfile(info, io.BytesIO(data))
    return archive_path


def create_zip_bytes(entries: dict[str, str]) -> bytes:
    """Return an in-memory zip with raw entry names (used to craft malicious archives)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for filename, content in entries.items():
            zf.writestr(filename, content)
    return buffer.getvalue()


def write_stub_tool(path: Path, version_line: str, exit_code: int = 0) -> Path:
    """Write an executable POSIX shell script answering ``--version``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "#!/bin/sh\n"
        'if [ "$1" = "--version" ]; then\n'
        f"  echo '{version_line}'\n"
        f"  exit {exit_code}\n"
        "fi\n"
        "exit 1\n"
    )
    path.chmod(0o755)
    return path


def touch_executable(path: Path) -> Path:
    """Create an empty file with the executable bit set."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    path.chmod(0o755)
    return path


class FakeRunner:
    """
    Process runner double answering from a table.

    Results are looked up by ``(executable, first argument)``. Unknown executables
    behave like files that cannot be spawned.
    """

    def __init__(self) -> None:
        self.results: dict[tuple[str, str], ProbeResult] = {}
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def add_tool(
        self,
        path: Path | str,
        version_output: str,
        returncode: int = 0,
        input_formats: Sequence[str] | None = None,
        output_formats: Sequence[str] | None = None,
    ) -> None:
        exe = str(path)
        self.results[(exe, "--version")] = ProbeResult(returncode, version_output.encode(), b"")
        if input_formats is not None:
            self.results[(exe, "--list-input-formats")] = ProbeResult(0, "\n".join(input_formats).encode(), b"")
        if output_formats is not None:
            self.results[(exe, "--list-output-formats")] = ProbeResult(0, "\n".join(output_formats).encode(), b"")

    def set_result(self, path: Path | str, arg: str, result: ProbeResult) -> None:
        self.results[(str(path), arg)] = result

    def run(self, args: Sequence[str]) -> ProbeResult:
        with self._lock:
            self.calls.append(list(args))
        key = (args[0], args[1] if len(args) > 1 else "")
        if args[0] not in {exe for exe, _ in self.results}:
            raise ExecutionFailedError(f"Failed to execute '{args[0]}': no such file")
        return self.results.get(key, ProbeResult(2, b"", b"unknown option"))

    def called_with(self, arg: str) -> list[str]:
        """Executables that were invoked with *arg*."""
        return [call[0] for call in self.calls if len(call) > 1 and call[1] == arg]


class FixedPathsLocator(ToolLocator):
    """Locator whose well-known install locations are replaced by a fixed list."""

    def __init__(self, runner: FakeRunner, paths: Sequence[Path | str] = ()) -> None:
        super().__init__(runner, target_os="linux", environ={})  # type: ignore[arg-type]
        self.paths = [str(path) for path in paths]

    def common_paths(self, kind: ToolKind) -> list[str]:
        return list(self.paths)


def make_response(
    status_code: int = 200,
    json_data: object = None,
    content: bytes = b"",
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Create a mock ``requests.Response`` usable as a context manager."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.headers = headers if headers is not None else {}
    response.iter_content = lambda chunk_size: iter([content] if content else [])
    response.__enter__ = lambda s: s
    response.__exit__ = MagicMock(return_value=False)
    return response


def make_session(*responses: object) -> MagicMock:
    """Create a mock session whose ``get`` returns (or raises) *responses* in order."""
    session = MagicMock()
    session.get = MagicMock(side_effect=list(responses))
    return session
