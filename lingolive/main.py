"""Terminal front end for the LingoLive tutor.

Usage:
    python -m lingolive.main --native English --target Spanish --level beginner

Controls: Enter starts or stops the session, "c" clears the transcript,
"q" quits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
from pathlib import Path

from lingolive.core.config import Settings, load_settings
from lingolive.core.controller import TutorSessionController
from lingolive.tutor.languages import (
    Language,
    Proficiency,
    TutorPreferences,
    parse_language,
    parse_proficiency,
)

logger = logging.getLogger(__name__)

HELP_TEXT = "[Enter] start/stop   [c] clear transcript   [q] quit"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lingolive",
        description="Real-time voice language tutor powered by the Gemini Live API.",
    )
    parser.add_argument(
        "--native", type=parse_language, default=None,
        metavar="LANGUAGE",
        help="your native language (" + ", ".join(l.value for l in Language) + ")",
    )
    parser.add_argument(
        "--target", type=parse_language, default=None,
        metavar="LANGUAGE", help="language you want to learn",
    )
    parser.add_argument(
        "--level", type=parse_proficiency, default=None,
        metavar="LEVEL",
        help="proficiency (" + ", ".join(p.value for p in Proficiency) + ")",
    )
    parser.add_argument("--env", type=Path, default=None, help="path to a .env file")
    parser.add_argument("--config", type=Path, default=None, help="path to a YAML config")
    return parser.parse_args(argv)


def resolve_preferences(args: argparse.Namespace, settings: Settings) -> TutorPreferences:
    """Command-line choices override the configured defaults."""
    defaults = settings.preferences
    return TutorPreferences(
        native_language=args.native or defaults.native_language,
        target_language=args.target or defaults.target_language,
        proficiency=args.level or defaults.proficiency,
    )


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    """Forward stdin lines to the event loop from a daemon thread."""

    def reader() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    threading.Thread(target=reader, name="stdin-reader", daemon=True).start()


async def run(controller: TutorSessionController) -> None:
    """Drive the controller from keyboard commands until quit or EOF."""
    commands: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), commands)
    print(HELP_TEXT, flush=True)

    try:
        while True:
            line = await commands.get()
            if line is None:
                break
            command = line.strip().lower()
            if command == "q":
                break
            elif command == "c":
                controller.clear_transcript()
            elif command == "":
                await controller.toggle()
            else:
                print(HELP_TEXT, flush=True)
    finally:
        await controller.stop()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(env_path=args.env, yaml_path=args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Imported here so the rest of the package works without PortAudio.
    from lingolive.hardware.impl.console import ConsoleDisplay
    from lingolive.hardware.impl.sounddevice_io import (
        SoundDeviceAudioInput,
        SoundDeviceAudioOutput,
    )

    preferences = resolve_preferences(args, settings)
    logger.info(
        "Tutor: %s → %s (%s)",
        preferences.native_language.value,
        preferences.target_language.value,
        preferences.proficiency.value,
    )
    controller = TutorSessionController(
        settings,
        SoundDeviceAudioInput(),
        SoundDeviceAudioOutput(),
        display=ConsoleDisplay(),
        preferences=preferences,
    )

    try:
        asyncio.run(run(controller))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
