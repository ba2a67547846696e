#!/usr/bin/env python3
"""Main entry point for the terminal music player.

Plays the given files (or the queue saved by the previous run) and logs
player events until the queue is exhausted or the user interrupts.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

from terminal_music_player.domain.shared.messages import LogTemplates
from terminal_music_player.utils.logging import setup_logging

if TYPE_CHECKING:
    from terminal_music_player.config.container import Container
    from terminal_music_player.config.settings import Settings
    from terminal_music_player.domain.music.events import MusicEvent

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terminal-music-player",
        description="Play audio files from the terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s song.flac album/*.mp3     # Play files in order
  %(prog)s --random --repeat queue   # Resume the saved queue, shuffled
        """,
    )
    parser.add_argument("files", nargs="*", help="audio files to queue (default: saved queue)")
    parser.add_argument(
        "--random", action="store_true", help="play in random order without repeats"
    )
    parser.add_argument(
        "--repeat",
        choices=["off", "queue", "track"],
        default=None,
        help="repeat mode (default: from settings)",
    )
    parser.add_argument(
        "--volume", type=float, default=None, help="initial volume between 0.0 and 1.0"
    )
    parser.add_argument(
        "--no-restore",
        action="store_true",
        help="do not restore the queue saved by the previous run",
    )
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    return parser


def describe_event(event: MusicEvent) -> str | None:
    """One log line for the events worth showing on the console."""
    from terminal_music_player.domain.music.events import (
        PlaybackError,
        QueueExhausted,
        TrackFinished,
        TrackStarted,
        VolumeChanged,
    )

    if isinstance(event, TrackStarted):
        track = event.track.with_duration(event.duration)
        return f"▶ {track.display_artist} - {track.display_title} [{track.duration_formatted}]"
    if isinstance(event, TrackFinished):
        return f"■ {event.track.display_title} ({event.reason.value})"
    if isinstance(event, VolumeChanged):
        return f"volume {event.level:.0%}"
    if isinstance(event, PlaybackError):
        return f"error: {event.message}"
    if isinstance(event, QueueExhausted):
        return "queue finished"
    return None


async def run(args: argparse.Namespace, container: Container) -> int:
    from terminal_music_player.domain.music.entities import Track
    from terminal_music_player.domain.music.events import PlaybackStateChanged
    from terminal_music_player.domain.music.value_objects import (
        OrderingMode,
        PlaybackState,
        RepeatMode,
    )

    settings = container.settings
    subscription = container.event_channel.subscribe(name="console")
    await container.initialize()
    controller = container.controller
    repository = container.queue_repository

    try:
        if args.files:
            await controller.extend([Track.from_path(path) for path in args.files])
        elif settings.queue.restore_on_start and not args.no_restore:
            saved = await repository.get()
            if saved is not None:
                await controller.load_queue(saved)

        if args.random:
            await controller.set_ordering_mode(OrderingMode.RANDOM)
        if args.repeat is not None:
            await controller.set_repeat_mode(RepeatMode(args.repeat))
        if args.volume is not None:
            await controller.set_volume(args.volume)

        result = await controller.play()
        if not result.is_success:
            logger.error(result.message)
            return 1

        async for event in subscription:
            line = describe_event(event)
            if line is not None:
                logger.info(line)
            if isinstance(event, PlaybackStateChanged) and event.state == PlaybackState.STOPPED:
                break
        return 0
    finally:
        subscription.close()
        await repository.save(controller.export_queue())
        await container.shutdown()


def main(argv: Sequence[str] | None = None) -> int:
    from terminal_music_player.config.settings import get_settings

    args = build_parser().parse_args(argv)
    settings: Settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    logger.info(LogTemplates.APP_STARTING.format(environment=settings.environment))

    from terminal_music_player.config.container import create_container

    container = create_container(settings)

    try:
        code = asyncio.run(run(args, container))
        logger.info(LogTemplates.APP_STOPPED)
        return code
    except KeyboardInterrupt:
        logger.info(LogTemplates.APP_KEYBOARD_INTERRUPT)
        return 0
    except Exception as e:
        logger.exception(LogTemplates.APP_FATAL_ERROR, e)
        return 1


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
