"""Pandock domain models for tools, sources and releases."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin


@dataclass
class PandockJsonMixin(DataClassJSONMixin):
    """Shared mixin providing mashumaro config and JSON file I/O."""

    class Config(BaseConfig):
        omit_none = True

    @classmethod
    def from_json_file(cls, file_path: Path) -> Self:
        return cls.from_dict(json.loads(file_path.read_text()))

    def to_json_string(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_json_file(self, file_path: Path) -> None:
        file_path.write_text(self.to_json_string())


class ToolKind(Enum):
    """Managed tools. The value is the upstream program name."""

    CONVERTER = "pandoc"
    TYPESETTER = "typst"

    @classmethod
    def from_name(cls, name: str) -> ToolKind:
        """Look up a tool kind by program name (``pandoc``) or member name (``converter``)."""
        lowered = name.strip().lower()
        for kind in cls:
            if lowered in (kind.value, kind.name.lower()):
                return kind
        supported = ", ".join(kind.value for kind in cls)
        raise ValueError(f"Unknown tool {name!r}. Supported: {supported}")


@dataclass(frozen=True)
class CustomSource:
    """Executable path configured explicitly by the user."""

    path: Path
    priority: int = field(default=0, init=False)
    label: str = field(default="custom", init=False)


@dataclass(frozen=True)
class ManagedSource:
    """Executable bundled with the application or downloaded into its data directory."""

    priority: int = field(default=1, init=False)
    label: str = field(default="managed", init=False)


@dataclass(frozen=True)
class SystemSource:
    """Executable found in one of the system search paths."""

    path: Path
    priority: int = field(default=2, init=False)
    label: str = field(default="system", init=False)


ToolSource = CustomSource | ManagedSource | SystemSource


@dataclass
class ToolInfo(PandockJsonMixin):
    """Facts learned by probing a working executable."""

    version: str
    path: str
    is_working: bool
    supported_input_formats: set[str] = field(default_factory=set)
    supported_output_formats: set[str] = field(default_factory=set)
    detected_paths: list[str] = field(default_factory=list)
    search_paths: list[str] = field(default_factory=list)


class ToolManager:
    """
    One candidate source for a tool together with its validation outcome.

    A manager starts unvalidated. Validation moves it exactly once into either
    the available state (``info`` populated, ``available`` true) or the
    unavailable state (both cleared).
    """

    def __init__(self, kind: ToolKind, source: ToolSource) -> None:
        self.kind = kind
        self.source = source
        self.info: ToolInfo | None = None
        self.available = False
        self.validated = False

    def mark_available(self, info: ToolInfo) -> None:
        if not info.is_working:
            raise ValueError(f"Cannot mark {self.source.label} {self.kind.value} available with a non-working executable")
        self._settle(info, True)

    def mark_unavailable(self) -> None:
        self._settle(None, False)

    def _settle(self, info: ToolInfo | None, available: bool) -> None:
        if self.validated:
            raise RuntimeError(f"{self!r} has already been validated")
        self.info = info
        self.available = available
        self.validated = True

    def to_dict(self) -> dict[str, object]:
        return {
            "tool": self.kind.value,
            "source": self.source.label,
            "path": str(self.source.path) if isinstance(self.source, CustomSource | SystemSource) else None,
            "available": self.available,
            "info": self.info.to_dict() if self.info else None,
        }

    def __repr__(self) -> str:
        return f"ToolManager(kind={self.kind.value!r}, source={self.source!r}, available={self.available})"


@dataclass(frozen=True)
class DownloadConfig:
    """Target platform and mirror policy for one provisioning operation."""

    target_os: str
    target_arch: str
    use_mirrors: bool = True


@dataclass
class Asset(PandockJsonMixin):
    """One downloadable file attached to a release. ``size`` 0 means unknown."""

    name: str
    download_url: str
    size: int = 0
    content_type: str = "application/octet-stream"


@dataclass
class ReleaseMetadata(PandockJsonMixin):
    """Snapshot of one upstream release."""

    tag: str
    display_name: str
    notes: str = ""
    published_at: datetime | None = None
    assets: list[Asset] = field(default_factory=list)

    def asset_by_name(self, name: str) -> Asset | None:
        """Find an asset by its exact name."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


@dataclass
class VersionInfo(PandockJsonMixin):
    """Current and latest versions of a managed tool."""

    latest: str
    is_update_available: bool
    current: str | None = None
    available_versions: list[str] = field(default_factory=list)
