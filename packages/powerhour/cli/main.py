"""Command-line interface for Power Hour.

Thin wrapper over ``PowerHourSession``: every subcommand maps to one session
operation and prints its outcome with rich.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Awaitable, Callable
import logging
from pathlib import Path
import sys

from rich.console import Console
from rich.table import Table

from powerhour.core.config.models import AppConfig
from powerhour.core.errors import PowerHourError
from powerhour.core.library.scanner import ScanProgress
from powerhour.core.mixes import Mix, SourceProjectData
from powerhour.core.session import PowerHourSession
from powerhour.core.utils.formatting import format_timestamp
from powerhour.core.utils.logging import configure_logging

console = Console()
logger = logging.getLogger(__name__)

Command = Callable[[PowerHourSession, argparse.Namespace], Awaitable[int]]


def _format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


# ============================================================================
# Library
# ============================================================================


async def cmd_scan(session: PowerHourSession, args: argparse.Namespace) -> int:
    def on_progress(progress: ScanProgress) -> None:
        console.print(f"  scanned {progress.processed_count} files ({progress.current_file_name})")

    console.print(f"[bold]Scanning[/bold] {args.path}")
    result = await session.scan_library(args.path, on_progress=on_progress, force=args.force)
    if result.cancelled:
        console.print("[yellow]Scan cancelled[/yellow]")
        return 1

    source = "cache" if result.from_cache else "scan"
    console.print(f"[green]Found {len(result.songs)} songs[/green] (from {source})")
    return 0


async def cmd_libraries(session: PowerHourSession, args: argparse.Namespace) -> int:
    if args.remove:
        removed = await session.remove_library(args.remove)
        if not removed:
            console.print(f"[yellow]No cached library for {args.remove}[/yellow]")
            return 1
        console.print(f"[green]Removed library cache for {args.remove}[/green]")
        return 0

    libraries = await session.list_libraries()
    current = await session.library_store.get_current_library()
    table = Table(title="Cached libraries")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Path")
    table.add_column("Songs", justify="right")
    table.add_column("Size", justify="right")
    for record in libraries:
        marker = "*" if current is not None and record.id == current.id else ""
        table.add_row(marker, record.name, record.path, str(record.song_count), _format_size(record.total_size))
    console.print(table)

    stats = await session.get_cache_stats()
    console.print(f"{stats.total_libraries} libraries, {stats.total_songs} songs, {_format_size(stats.total_size)}")
    return 0


# ============================================================================
# Clips and mixes
# ============================================================================


async def cmd_extract(session: PowerHourSession, args: argparse.Namespace) -> int:
    clip = await session.extract_clip(Path(args.file).resolve(), args.start, args.duration)
    console.print(f"[green]Extracted[/green] {clip.name} -> {clip.id} ({clip.duration:.2f}s)")
    if clip.clip_path:
        console.print(f"   {clip.clip_path}")
    return 0


async def cmd_wildcard(session: PowerHourSession, args: argparse.Namespace) -> int:
    library = await session.scan_library(args.library)
    if not library.songs:
        console.print("[yellow]The library has no songs[/yellow]")
        return 1

    clips = await session.wild_card(library.songs, max_clips=args.max)
    table = Table(title=f"Wild card: {len(clips)} clips")
    table.add_column("Id")
    table.add_column("Clip")
    table.add_column("Start", justify="right")
    for clip in clips:
        table.add_row(clip.id, clip.name, format_timestamp(clip.start))
    console.print(table)
    return 0


async def cmd_compose(session: PowerHourSession, args: argparse.Namespace) -> int:
    result = await session.compose_mix(args.clip_ids, interstitial=args.interstitial)
    mix = Mix(
        id="",
        name=args.name,
        clips=result.clips,
        has_interstitial=args.interstitial is not None,
        duration=result.duration,
        song_list=[clip.song_name or clip.name for clip in result.clips],
        source_project_data=SourceProjectData(interstitial_path=args.interstitial, clips=result.clips),
    )
    saved = await session.save_mix(mix, result.audio_bytes)
    console.print(
        f"[green]Saved mix[/green] {saved.name} ({len(result.clips)} clips, "
        f"{format_timestamp(result.duration)}) -> {saved.local_file_path}"
    )
    return 0


async def cmd_mixes(session: PowerHourSession, args: argparse.Namespace) -> int:
    if args.delete:
        if not await session.delete_mix(args.delete):
            console.print(f"[yellow]Mix not found: {args.delete}[/yellow]")
            return 1
        console.print(f"[green]Deleted mix {args.delete}[/green]")
        return 0

    if args.rename:
        ref, new_name = args.rename
        mix = await session.rename_mix(ref, new_name)
        console.print(f"[green]Renamed mix {mix.id or ref} to {mix.name}[/green]")
        return 0

    table = Table(title="Mixes")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Clips", justify="right")
    table.add_column("Created")
    for mix in await session.list_mixes():
        table.add_row(mix.id, mix.name, str(len(mix.clips)), mix.created_at)
    console.print(table)
    return 0


# ============================================================================
# Archives and export
# ============================================================================


async def cmd_export_project(session: PowerHourSession, args: argparse.Namespace) -> int:
    result = await session.export_project_archive(args.mix, args.out)
    console.print(f"[green]{result.message}[/green]")
    console.print(f"   {result.path}")
    return 0


async def cmd_import_project(session: PowerHourSession, args: argparse.Namespace) -> int:
    result = await session.import_project_archive(args.archive)
    console.print(f"[green]{result.message}[/green]")
    for old_id, new_id in result.renamed_clips.items():
        console.print(f"   clip {old_id} imported as {new_id}")
    return 0


async def cmd_export_playlist(session: PowerHourSession, args: argparse.Namespace) -> int:
    result = await session.export_playlist_archive(args.playlist_id, args.out)
    style = "green" if result.valid_clips == result.total_clips else "yellow"
    console.print(f"[{style}]{result.message}[/{style}]")
    console.print(f"   {result.path}")
    return 0


async def cmd_import_playlist(session: PowerHourSession, args: argparse.Namespace) -> int:
    result = await session.import_playlist_archive(args.archive)
    console.print(f"[green]{result.message}[/green]")
    return 0


async def cmd_export_audio(session: PowerHourSession, args: argparse.Namespace) -> int:
    output = await session.export_playlist_as_audio(args.playlist_id, args.output)
    console.print(f"[green]Exported[/green] {output}")
    return 0


COMMANDS: dict[str, Command] = {
    "scan": cmd_scan,
    "libraries": cmd_libraries,
    "extract": cmd_extract,
    "wildcard": cmd_wildcard,
    "compose": cmd_compose,
    "mixes": cmd_mixes,
    "export-project": cmd_export_project,
    "import-project": cmd_import_project,
    "export-playlist": cmd_export_playlist,
    "import-playlist": cmd_import_playlist,
    "export-audio": cmd_export_audio,
}


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="powerhour",
        description="Power Hour - build sixty-clip drinking-game mixes from your music library",
    )
    p.add_argument("--data-dir", help="Storage root (default: data_dir from config, ~/.powerhour)")
    p.add_argument("--config", help="Path to config file (YAML or JSON; default: powerhour.yaml)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    scan = sub.add_parser("scan", help="Scan a music folder into the library cache")
    scan.add_argument("path", help="Folder to scan")
    scan.add_argument("--force", action="store_true", help="Rescan even if the cache is fresh")

    libraries = sub.add_parser("libraries", help="List cached libraries")
    libraries.add_argument("--remove", metavar="PATH", help="Remove the cached library for PATH")

    extract = sub.add_parser("extract", help="Extract one clip from an audio file")
    extract.add_argument("file", help="Source audio file")
    extract.add_argument("--start", type=float, required=True, help="Start time in seconds")
    extract.add_argument("--duration", type=float, default=60.0, help="Clip length in seconds (default: 60)")

    wildcard = sub.add_parser("wildcard", help="Extract random one-minute clips from a library")
    wildcard.add_argument("library", help="Library folder (scanned if not cached)")
    wildcard.add_argument("--max", type=int, default=60, help="Maximum number of clips (default: 60)")

    compose = sub.add_parser("compose", help="Render stored clips into a mix")
    compose.add_argument("clip_ids", nargs="+", help="Clip ids in play order")
    compose.add_argument("--name", required=True, help="Mix name")
    compose.add_argument("--interstitial", help="Sound played between clips")

    mixes = sub.add_parser("mixes", help="List, rename or delete mixes")
    group = mixes.add_mutually_exclusive_group()
    group.add_argument("--delete", metavar="MIX", help="Delete a mix by id or name")
    group.add_argument("--rename", nargs=2, metavar=("MIX", "NAME"), help="Rename a mix")

    export_project = sub.add_parser("export-project", help="Export a mix as a .phproject archive")
    export_project.add_argument("mix", help="Mix id or name")
    export_project.add_argument("--out", help="Destination archive path")

    import_project = sub.add_parser("import-project", help="Import a .phproject archive")
    import_project.add_argument("archive", help="Archive path")

    export_playlist = sub.add_parser("export-playlist", help="Export a playlist as a .phpl archive")
    export_playlist.add_argument("playlist_id", help="Playlist id")
    export_playlist.add_argument("--out", help="Destination archive path")

    import_playlist = sub.add_parser("import-playlist", help="Import a .phpl archive")
    import_playlist.add_argument("archive", help="Archive path")

    export_audio = sub.add_parser("export-audio", help="Export a playlist as one WAV or MP3 via ffmpeg")
    export_audio.add_argument("playlist_id", help="Playlist id")
    export_audio.add_argument("output", help="Output file (.wav or .mp3)")

    return p


def build_session(args: argparse.Namespace) -> PowerHourSession:
    config = AppConfig.load_or_default(args.config)
    if args.data_dir:
        config = config.with_data_dir(args.data_dir)

    log = config.logging
    configure_logging(
        level="DEBUG" if args.verbose else log.level,
        format_string=log.format,
        filename=log.filename,
        structured=log.structured,
    )
    return PowerHourSession(config)


async def run_command(args: argparse.Namespace) -> int:
    session = build_session(args)
    return await COMMANDS[args.cmd](session, args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    args = build_arg_parser().parse_args(argv)
    try:
        return asyncio.run(run_command(args))
    except PowerHourError as e:
        logger.debug("Command %s failed", args.cmd, exc_info=True)
        console.print(f"[red]ERROR: {e.message}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
