"""CLI entry point for pandock."""

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from py_app_dev.core.exceptions import UserNotificationException
from py_app_dev.core.logging import logger, setup_logger, time_it

from pandock import __version__
from pandock.domain import ToolKind
from pandock.engine import ToolResolutionEngine
from pandock.platform import current_download_config
from pandock.progress import RichProgressHandler

package_name = "pandock"
DEFAULT_DATA_DIR = Path.home() / ".pandock"
DEFAULT_RESOURCE_DIR = DEFAULT_DATA_DIR / "resources"

ToolOption = Annotated[ToolKind, typer.Option("--tool", "-t", help="Tool to work on.")]
ResourceDirOption = Annotated[Path, typer.Option("--resource-dir", help="Directory holding bundled tools.")]
DataDirOption = Annotated[Path, typer.Option("--data-dir", help="Per-user data directory holding portable tools.")]
MirrorsOption = Annotated[bool, typer.Option("--mirrors/--no-mirrors", help="Try download mirrors before the origin URL.")]


def _create_engine(
    resource_dir: Path,
    data_dir: Path,
    mirrors: bool = True,
    progress: RichProgressHandler | None = None,
) -> ToolResolutionEngine:
    return ToolResolutionEngine(
        resource_dir=resource_dir,
        app_data_dir=data_dir,
        config=current_download_config(use_mirrors=mirrors),
        download_progress=progress.on_download if progress else None,
        extract_progress=progress.on_extract if progress else None,
    )


app = typer.Typer(
    name=package_name,
    help="Locate, download and update the pandoc and typst executables.",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def version(
    version: bool = typer.Option(None, "--version", "-v", is_eager=True, help="Show version and exit."),
) -> None:
    if version:
        typer.echo(f"{package_name} {__version__}")
        raise typer.Exit()


@app.command(help="Resolve the executable to use: custom path, then managed copy, then system.")
@time_it("resolve")
def resolve(
    tool: ToolOption = ToolKind.CONVERTER,
    custom: Annotated[Path | None, typer.Option("--custom", help="User-configured executable path.")] = None,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    typer.echo(engine.resolve(tool, custom).to_json_string())


@app.command(help="Validate the managed copy and every system executable.")
@time_it("discover")
def discover(
    tool: ToolOption = ToolKind.CONVERTER,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    managers = engine.discover(tool)
    typer.echo(json.dumps([manager.to_dict() for manager in managers], indent=2))


@app.command(name="search-paths", help="List the system locations searched for the tool.")
def search_paths(
    tool: ToolOption = ToolKind.CONVERTER,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    for path in engine.locator.search_paths(tool):
        typer.echo(path)


@app.command(help="Show the latest upstream release.")
@time_it("latest")
def latest(
    tool: ToolOption = ToolKind.CONVERTER,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    typer.echo(engine.latest_release(tool).to_json_string())


@app.command(help="List recent upstream releases.")
@time_it("releases")
def releases(
    tool: ToolOption = ToolKind.CONVERTER,
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Maximum number of releases.")] = 10,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    found = engine.releases(tool, limit)
    if not found:
        typer.echo("No releases found.")
        return

    typer.echo(f"{'Tag':<15} {'Published':<12} {'Name'}")
    typer.echo("-" * 60)
    for release in found:
        published = release.published_at.date().isoformat() if release.published_at else "-"
        typer.echo(f"{release.tag:<15} {published:<12} {release.display_name}")


@app.command(help="Download the release archive for this platform.")
@time_it("download")
def download(
    dest: Annotated[Path, typer.Option("--dest", "-d", help="Directory receiving the archive.")],
    tool: ToolOption = ToolKind.CONVERTER,
    release: Annotated[str | None, typer.Option("--release", "-r", help="Release tag, latest by default.")] = None,
    mirrors: MirrorsOption = True,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    progress = RichProgressHandler()
    try:
        archive = _create_engine(resource_dir, data_dir, mirrors, progress).download(tool, release, dest)
    finally:
        progress.close()
    logger.info(f"Saved {archive}")
    typer.echo(str(archive))


@app.command(help="Extract a zip, tar.gz or tar.xz archive.")
@time_it("extract")
def extract(
    archive: Annotated[Path, typer.Argument(help="Archive to extract.")],
    dest: Annotated[Path, typer.Option("--dest", "-d", help="Target directory.")],
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    progress = RichProgressHandler()
    try:
        target = _create_engine(resource_dir, data_dir, progress=progress).extract(archive, dest)
    finally:
        progress.close()
    typer.echo(str(target))


@app.command(help="Download the latest release into the managed directory.")
@time_it("update")
def update(
    tool: ToolOption = ToolKind.CONVERTER,
    mirrors: MirrorsOption = True,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    progress = RichProgressHandler()
    try:
        tag = _create_engine(resource_dir, data_dir, mirrors, progress).update_managed(tool)
    finally:
        progress.close()
    logger.info(f"Successfully updated {tool.value} to {tag}")


@app.command(name="install-portable", help="Download the latest release into the per-user data directory.")
@time_it("install-portable")
def install_portable(
    tool: ToolOption = ToolKind.CONVERTER,
    mirrors: MirrorsOption = True,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    progress = RichProgressHandler()
    try:
        tag = _create_engine(resource_dir, data_dir, mirrors, progress).install_portable(tool)
    finally:
        progress.close()
    logger.info(f"Successfully installed {tool.value} {tag}")


@app.command(name="check-update", help="Tell whether a newer release than the current version exists.")
@time_it("check-update")
def check_update(
    tool: ToolOption = ToolKind.CONVERTER,
    current: Annotated[str | None, typer.Option("--current", help="Current version, the managed copy by default.")] = None,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    if engine.check_update_available(tool, current):
        typer.echo("Update available.")
    else:
        typer.echo("Up to date.")


@app.command(name="version-info", help="Show current and latest versions with recent release tags.")
@time_it("version-info")
def version_info(
    tool: ToolOption = ToolKind.CONVERTER,
    current: Annotated[str | None, typer.Option("--current", help="Current version.")] = None,
    resource_dir: ResourceDirOption = DEFAULT_RESOURCE_DIR,
    data_dir: DataDirOption = DEFAULT_DATA_DIR,
) -> None:
    engine = _create_engine(resource_dir, data_dir)
    typer.echo(engine.version_info(tool, current).to_json_string())


def main() -> int:
    try:
        setup_logger()
        app()
        return 0
    except UserNotificationException as e:
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
