"""Priority-ordered tool resolution and provisioning."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import requests
from py_app_dev.core.logging import logger

from pandock.domain import (
    CustomSource,
    DownloadConfig,
    ManagedSource,
    ReleaseMetadata,
    SystemSource,
    ToolInfo,
    ToolKind,
    ToolManager,
    VersionInfo,
)
from pandock.downloader import DOWNLOAD_MIRRORS, download_asset
from pandock.errors import ExecutionFailedError, ExtractionError, PandockError, ToolNotFoundError
from pandock.extractor import extract_archive
from pandock.locator import ToolLocator
from pandock.platform import asset_patterns, current_download_config
from pandock.process import ProcessRunner
from pandock.progress import ProgressCallback
from pandock.registry import ReleaseRegistry, find_release, select_asset
from pandock.tools import tool_spec
from pandock.version import extract_version_from_output, is_update_available

#: How many releases are searched when downloading a specific tag.
_RELEASE_LOOKUP_LIMIT = 50
#: How many release tags are reported by :meth:`ToolResolutionEngine.version_info`.
_VERSION_INFO_LIMIT = 20


class ToolResolutionEngine:
    """Finds, validates, downloads and updates the external tools used by the host application."""

    def __init__(
        self,
        resource_dir: Path,
        app_data_dir: Path,
        config: DownloadConfig | None = None,
        session: requests.Session | None = None,
        runner: ProcessRunner | None = None,
        locator: ToolLocator | None = None,
        registry: ReleaseRegistry | None = None,
        mirrors: Sequence[str] = DOWNLOAD_MIRRORS,
        download_progress: ProgressCallback | None = None,
        extract_progress: ProgressCallback | None = None,
        max_workers: int = 4,
    ) -> None:
        """
        Initialize the engine.

        Args:
            resource_dir: Application resource directory holding bundled tools.
            app_data_dir: Per-user application data directory holding portable tools.
            config: Target platform and mirror policy, the running platform by default.
            session: HTTP session shared by registry and downloads.
            runner: Process runner used for version and format probes.
            locator: Search path enumeration, built from *runner* and *config* by default.
            registry: Release registry client, built from *session* by default.
            mirrors: Download mirror prefixes in preference order.
            download_progress: Optional callback for download progress.
            extract_progress: Optional callback for extraction progress.
            max_workers: Threads used to validate discovered sources.

        """
        self.resource_dir = resource_dir
        self.app_data_dir = app_data_dir
        self.config = config or current_download_config()
        self.session = session or requests.Session()
        self.runner = runner or ProcessRunner()
        self.locator = locator or ToolLocator(self.runner, self.config.target_os)
        self.registry = registry or ReleaseRegistry(self.session)
        self.mirrors = tuple(mirrors)
        self.download_progress = download_progress
        self.extract_progress = extract_progress
        self.max_workers = max_workers
        self._update_locks: dict[ToolKind, threading.Lock] = {kind: threading.Lock() for kind in ToolKind}

    # -- directories ---------------------------------------------------------

    def managed_root(self, kind: ToolKind) -> Path:
        """Directory holding the bundled copy of a tool; target of :meth:`update_managed`."""
        return self.resource_dir / tool_spec(kind).resource_subdir

    def portable_root(self, kind: ToolKind) -> Path:
        """Directory holding the per-user portable copy; target of :meth:`install_portable`."""
        return self.app_data_dir / tool_spec(kind).portable_subdir

    # -- validation ----------------------------------------------------------

    def executable_path(self, manager: ToolManager) -> Path | None:
        """Resolve the source of *manager* to a concrete executable path."""
        source = manager.source
        if isinstance(source, CustomSource | SystemSource):
            return source.path
        return self.locator.managed_path(manager.kind, self.resource_dir, self.app_data_dir)

    def _probe_formats(self, path: Path, args: tuple[str, ...] | None, fallback: frozenset[str]) -> set[str]:
        if args is None:
            return set(fallback)
        try:
            result = self.runner.run([str(path), *args])
        except ExecutionFailedError as exc:
            logger.debug(f"Format probe {args} of {path} failed, using the built-in list: {exc}")
            return set(fallback)
        if not result.ok:
            logger.debug(f"Format probe {args} of {path} exited with {result.returncode}, using the built-in list")
            return set(fallback)
        try:
            text = result.stdout.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug(f"Format probe {args} of {path} printed undecodable output, using the built-in list")
            return set(fallback)
        formats = {line.strip() for line in text.splitlines() if line.strip()}
        return formats or set(fallback)

    def probe(self, kind: ToolKind, path: Path) -> ToolInfo:
        """
        Run the version and format probes against *path*.

        Format listing failures fall back to the tool's built-in format tables.

        Raises:
            ToolNotFoundError: If *path* does not exist.
            ExecutionFailedError: If the version probe cannot run, exits non-zero or prints
                undecodable output.

        """
        spec = tool_spec(kind)
        if not path.exists():
            raise ToolNotFoundError(f"{spec.exe_stem} executable not found at {path}")
        result = self.runner.run([str(path), *spec.version_args])
        if not result.ok:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ExecutionFailedError(f"{spec.exe_stem} at '{path}' failed to execute (exit status {result.returncode}) {stderr}".rstrip())
        try:
            version_text = result.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExecutionFailedError(f"Failed to read {spec.exe_stem} version output of '{path}'") from exc
        return ToolInfo(
            version=extract_version_from_output(version_text, spec.program_names),
            path=str(path),
            is_working=True,
            supported_input_formats=self._probe_formats(path, spec.input_formats_args, spec.fallback_input_formats),
            supported_output_formats=self._probe_formats(path, spec.output_formats_args, spec.fallback_output_formats),
        )

    def validate(self, manager: ToolManager) -> bool:
        """
        Validate *manager*, moving it to the available or unavailable state.

        Failures are logged and swallowed; they only make this candidate unavailable.
        """
        try:
            path = self.executable_path(manager)
        except OSError as exc:
            logger.debug(f"Cannot search for the {manager.source.label} {manager.kind.value} executable: {exc}")
            manager.mark_unavailable()
            return False
        if path is None:
            logger.debug(f"No {manager.source.label} {manager.kind.value} executable found")
            manager.mark_unavailable()
            return False
        try:
            info = self.probe(manager.kind, path)
        except (ToolNotFoundError, ExecutionFailedError, OSError) as exc:
            logger.debug(f"{manager.source.label} {manager.kind.value} at {path} is unavailable: {exc}")
            manager.mark_unavailable()
            return False
        manager.mark_available(info)
        return True

    # -- resolution ----------------------------------------------------------

    def resolve(self, kind: ToolKind, custom_path: str | Path | None = None) -> ToolInfo:
        """
        Return the info of the highest-priority working executable.

        Order: the custom path (if given), the managed copy, then the system search paths
        in their fixed order. The returned info also lists every valid system path and
        every searched path.

        Raises:
            ToolNotFoundError: If no candidate works. The message lists what was searched.

        """
        spec = tool_spec(kind)
        search_paths = self.locator.search_paths(kind)
        candidates: list[ToolManager] = []
        if custom_path:
            candidates.append(ToolManager(kind, CustomSource(Path(custom_path))))
        candidates.append(ToolManager(kind, ManagedSource()))
        candidates += [ToolManager(kind, SystemSource(Path(path))) for path in search_paths]

        for manager in candidates:
            if self.validate(manager) and manager.info is not None:
                logger.info(f"Using {manager.source.label} {spec.exe_stem} {manager.info.version} at {manager.info.path}")
                return dataclasses.replace(
                    manager.info,
                    detected_paths=self.locator.find_all_valid(kind),
                    search_paths=search_paths,
                )

        searched = []
        if custom_path:
            searched.append(f"- {custom_path} (custom)")
        searched += [f"- {self.managed_root(kind)} (managed)", f"- {self.portable_root(kind)} (managed)"]
        searched += [f"- {path}" for path in search_paths]
        raise ToolNotFoundError(
            f"{spec.exe_stem} not found. Searched {len(searched)} locations:\n" + "\n".join(searched) + "\nInstall it, download a managed copy or configure a custom path."
        )

    def discover(self, kind: ToolKind) -> list[ToolManager]:
        """
        Enumerate and validate the managed source and every existing system executable.

        Sources are validated concurrently; the returned list keeps discovery order.
        """
        managers = [ToolManager(kind, ManagedSource())]
        for path in self.locator.search_paths(kind):
            if self.locator.is_executable(path):
                managers.append(ToolManager(kind, SystemSource(Path(path))))
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            list(pool.map(self.validate, managers))
        return managers

    def best(self, kind: ToolKind, custom_path: str | Path | None = None) -> ToolManager | None:
        """Return the first available manager by source priority, or None."""
        managers = self.discover(kind)
        if custom_path:
            custom = ToolManager(kind, CustomSource(Path(custom_path)))
            self.validate(custom)
            managers.insert(0, custom)
        # sorted() is stable, so system sources keep their search order.
        for manager in sorted(managers, key=lambda m: m.source.priority):
            if manager.available:
                return manager
        return None

    def custom_manager(self, kind: ToolKind, path: str | Path) -> ToolManager:
        """
        Validate a user-supplied executable path.

        Raises:
            ToolNotFoundError: If the path does not exist.
            ExecutionFailedError: If the executable does not work.

        """
        manager = ToolManager(kind, CustomSource(Path(path)))
        try:
            info = self.probe(kind, Path(path))
        except PandockError:
            manager.mark_unavailable()
            raise
        manager.mark_available(info)
        return manager

    # -- releases and provisioning ------------------------------------------

    def latest_release(self, kind: ToolKind) -> ReleaseMetadata:
        return self.registry.latest_release(kind)

    def releases(self, kind: ToolKind, limit: int = 10) -> list[ReleaseMetadata]:
        return self.registry.releases(kind, limit)

    def _download_release(self, kind: ToolKind, release: ReleaseMetadata, target_dir: Path) -> Path:
        patterns = asset_patterns(kind, self.config.target_os, self.config.target_arch)
        asset = select_asset(release, patterns, self.config)
        logger.info(f"Downloading {asset.name} ({release.tag}) into {target_dir}")
        return download_asset(asset, target_dir, self.config, self.session, self.mirrors, self.download_progress)

    def download(self, kind: ToolKind, version: str | None, target_dir: Path) -> Path:
        """
        Download the platform archive of a release into *target_dir*.

        Args:
            kind: Tool to download.
            version: Release tag, or None for the latest release.
            target_dir: Directory receiving the archive.

        Returns:
            Path of the downloaded archive.

        """
        if version is None:
            release = self.registry.latest_release(kind)
        else:
            release = find_release(self.registry.releases(kind, _RELEASE_LOOKUP_LIMIT), version)
        return self._download_release(kind, release, target_dir)

    def extract(self, archive_path: Path, target_dir: Path) -> Path:
        """Extract a downloaded archive into *target_dir*, overwriting existing files."""
        return extract_archive(archive_path, target_dir, progress_callback=self.extract_progress, label=archive_path.name)

    def _provision(self, kind: ToolKind, root: Path) -> str:
        release = self.registry.latest_release(kind)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExtractionError(f"Failed to create {root}: {exc}") from exc
        archive = self._download_release(kind, release, root)
        self.extract(archive, root)
        archive.unlink(missing_ok=True)
        logger.info(f"Installed {tool_spec(kind).exe_stem} {release.tag} into {root}")
        return release.tag

    def update_managed(self, kind: ToolKind) -> str:
        """
        Download the latest release into the managed root and extract it over the old copy.

        Updates of the same tool are serialized.

        Returns:
            The release tag that was installed.

        """
        with self._update_locks[kind]:
            return self._provision(kind, self.managed_root(kind))

    def install_portable(self, kind: ToolKind) -> str:
        """Download the latest release into the per-user portable directory."""
        with self._update_locks[kind]:
            return self._provision(kind, self.portable_root(kind))

    def managed_version(self, kind: ToolKind) -> str | None:
        """Version of the working managed copy, or None."""
        manager = ToolManager(kind, ManagedSource())
        if self.validate(manager) and manager.info is not None:
            return manager.info.version
        return None

    def check_update_available(self, kind: ToolKind, current_version: str | None = None) -> bool:
        """
        Tell whether the latest release differs from the current version.

        Without *current_version* the managed copy is probed; a missing managed copy always
        counts as outdated. Normalized versions are compared for string inequality only.
        """
        current = current_version if current_version is not None else (self.managed_version(kind) or "none")
        latest = self.registry.latest_release(kind)
        return is_update_available(current, latest.tag, tool_spec(kind).program_names)

    def version_info(self, kind: ToolKind, current_version: str | None = None) -> VersionInfo:
        """Summarize current and latest versions together with recent release tags."""
        latest = self.registry.latest_release(kind)
        recent = self.registry.releases(kind, _VERSION_INFO_LIMIT)
        return VersionInfo(
            current=current_version,
            latest=latest.tag,
            available_versions=[release.tag for release in recent],
            is_update_available=is_update_available(current_version, latest.tag, tool_spec(kind).program_names),
        )
