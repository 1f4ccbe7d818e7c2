"""Download and extraction progress reporting for pandock."""

from __future__ import annotations

import threading
from collections.abc import Callable

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

ProgressCallback = Callable[[str, int, int | None], None]
# Signature: (label, current, total_or_none). Downloads report bytes, extraction reports entries.


class RichProgressHandler:
    """Rich-based progress display with separate download and extraction bars."""

    def __init__(self) -> None:
        self._bars: dict[str, Progress] = {}
        self._tasks: dict[tuple[str, str], TaskID] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _new_progress(phase: str) -> Progress:
        if phase == "download":
            return Progress(
                "[progress.description]{task.description}",
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
            )
        return Progress(
            "[progress.description]{task.description}",
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
        )

    def _report(self, phase: str, label: str, current: int, total: int | None) -> None:
        with self._lock:
            progress = self._bars.get(phase)
            if progress is None:
                progress = self._bars[phase] = self._new_progress(phase)
                progress.start()
            key = (phase, label)
            if key not in self._tasks:
                self._tasks[key] = progress.add_task(label, total=total or None)
            task_id = self._tasks[key]
        if total and progress.tasks[task_id].total != total:
            progress.update(task_id, total=total)
        progress.update(task_id, completed=current)
        if total and current >= total:
            self._finish(phase, label)

    def _finish(self, phase: str, label: str) -> None:
        with self._lock:
            self._tasks.pop((phase, label), None)
            if not any(key[0] == phase for key in self._tasks):
                progress = self._bars.pop(phase, None)
                if progress is not None:
                    progress.stop()

    def on_download(self, label: str, downloaded: int, total: int | None) -> None:
        """Report download progress for an asset."""
        self._report("download", label, downloaded, total)

    def on_extract(self, label: str, extracted: int, total: int | None) -> None:
        """Report extraction progress for an archive."""
        self._report("extract", label, extracted, total)

    def close(self) -> None:
        """Stop all bars, including downloads that never reported a total."""
        with self._lock:
            for progress in self._bars.values():
                progress.stop()
            self._bars.clear()
            self._tasks.clear()
