"""Subprocess execution used to probe tool executables."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from py_app_dev.core.logging import logger

from pandock.errors import ExecutionFailedError

DEFAULT_PROBE_TIMEOUT = 30.0

# Keeps console windows from flashing up when probing from a GUI process on Windows.
_CREATE_NO_WINDOW = 0x08000000


@dataclass(frozen=True)
class ProbeResult:
    """Exit status and raw output of one probe invocation."""

    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Run an executable with fixed arguments and capture its output."""

    def __init__(self, timeout: float | None = DEFAULT_PROBE_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: Sequence[str]) -> ProbeResult:
        """
        Run *args* and return its exit status and output.

        Raises:
            ExecutionFailedError: If the process cannot be spawned or exceeds the timeout.

        """
        creationflags = _CREATE_NO_WINDOW if sys.platform == "win32" else 0
        try:
            completed = subprocess.run(  # noqa: S603
                list(args),
                capture_output=True,
                timeout=self.timeout,
                check=False,
                creationflags=creationflags,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutionFailedError(f"'{args[0]}' did not finish within {self.timeout} seconds") from exc
        except OSError as exc:
            raise ExecutionFailedError(f"Failed to execute '{args[0]}': {exc}") from exc
        logger.debug(f"{' '.join(args)} exited with {completed.returncode}")
        return ProbeResult(returncode=completed.returncode, stdout=completed.stdout, stderr=completed.stderr)
