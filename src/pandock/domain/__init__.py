from pandock.domain.models import (
    Asset,
    CustomSource,
    DownloadConfig,
    ManagedSource,
    ReleaseMetadata,
    SystemSource,
    ToolInfo,
    ToolKind,
    ToolManager,
    ToolSource,
    VersionInfo,
)

__all__ = [
    "Asset",
    "CustomSource",
    "DownloadConfig",
    "ManagedSource",
    "ReleaseMetadata",
    "SystemSource",
    "ToolInfo",
    "ToolKind",
    "ToolManager",
    "ToolSource",
    "VersionInfo",
]
