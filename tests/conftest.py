"""Shared pytest fixtures for pandock tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pandock.domain import DownloadConfig, ToolKind
from pandock.engine import ToolResolutionEngine
from tests.helpers import FakeRunner, FixedPathsLocator, touch_executable

LINUX_X86_64 = DownloadConfig(target_os="linux", target_arch="x86_64", use_mirrors=False)


@dataclass
class EngineEnv:
    """A resolution engine wired to fakes and rooted in a temporary directory."""

    root_dir: Path
    resource_dir: Path
    data_dir: Path
    system_dir: Path
    runner: FakeRunner
    registry: MagicMock
    session: MagicMock
    system_paths: list[Path] = field(default_factory=list)

    def engine(self, config: DownloadConfig = LINUX_X86_64, **kwargs: object) -> ToolResolutionEngine:
        return ToolResolutionEngine(
            resource_dir=self.resource_dir,
            app_data_dir=self.data_dir,
            config=config,
            session=self.session,
            runner=self.runner,  # type: ignore[arg-type]
            locator=FixedPathsLocator(self.runner, self.system_paths),
            registry=self.registry,
            **kwargs,  # type: ignore[arg-type]
        )

    def add_system_tool(self, name: str, version_output: str, **kwargs: object) -> Path:
        """Create a system executable at the next search position and register its probe output."""
        path = touch_executable(self.system_dir / name / "pandoc")
        self.runner.add_tool(path, version_output, **kwargs)  # type: ignore[arg-type]
        self.system_paths.append(path)
        return path

    def add_managed_tool(self, version_output: str, kind: ToolKind = ToolKind.CONVERTER, portable: bool = False) -> Path:
        """Create a managed executable and register its probe output."""
        subdir = f"{kind.value}-portable" if portable else kind.value
        base = self.data_dir if portable else self.resource_dir
        path = touch_executable(base / subdir / kind.value)
        self.runner.add_tool(path, version_output)
        return path

    def add_custom_tool(self, version_output: str) -> Path:
        path = touch_executable(self.root_dir / "custom" / "pandoc")
        self.runner.add_tool(path, version_output)
        return path


@pytest.fixture
def engine_env(tmp_path: Path) -> EngineEnv:
    """Provide an engine environment with no tools installed anywhere."""
    resource_dir = tmp_path / "resources"
    resource_dir.mkdir()
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    system_dir = tmp_path / "system"
    system_dir.mkdir()
    return EngineEnv(
        root_dir=tmp_path,
        resource_dir=resource_dir,
        data_dir=data_dir,
        system_dir=system_dir,
        runner=FakeRunner(),
        registry=MagicMock(),
        session=MagicMock(),
    )
