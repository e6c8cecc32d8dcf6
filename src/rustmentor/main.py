"""CLI entrypoint for the Rust tutoring shell."""

from __future__ import annotations

import argparse
import logging
import queue
import threading
from collections.abc import Callable
from pathlib import Path

from .gateway import GenerationGateway
from .llm import OpenRouterClient
from .session import TutorSession
from .settings import SettingsService
from .topics import TopicIndex
from .ui import render

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]

TICK_SECONDS = 0.25
PROMPT = "> "
NAMED_KEYS = {"up", "down", "left", "right", "enter", "esc", "tab", "space"}
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def default_log_path() -> Path:
    return Path.home() / ".rust-mentor" / "rust-mentor.log"


def configure_logging(log_file: Path, level: str = "INFO") -> None:
    """Send log records to a file; stdout belongs to the screen."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(filename=str(log_file), level=getattr(logging, level.upper()), format=LOG_FORMAT)


def _service(settings_path: Path | None = None, output_dir: Path | None = None) -> TutorSession:
    """Create a session wired to the bundled topic indexes and OpenRouter."""
    settings = SettingsService(settings_path)
    topics = TopicIndex()
    gateway = GenerationGateway(OpenRouterClient(), model=lambda: settings.model)
    return TutorSession(settings, gateway, topics, output_dir=output_dir)


def parse_keys(line: str) -> list[str]:
    """Map one input line to key presses.

    An empty line is ``enter``. Whitespace-separated words naming a key
    (``up``, ``esc``, ...) are that key; any other word is one key per character.
    """
    words = line.split()
    if not words:
        return ["enter"]
    keys: list[str] = []
    for word in words:
        lowered = word.lower()
        if lowered in NAMED_KEYS:
            keys.append(lowered)
        else:
            keys.extend(word)
    return keys


def _read_lines(input_fn: InputFn, lines: queue.Queue[str | None]) -> None:
    while True:
        try:
            line = input_fn(PROMPT)
        except EOFError:
            lines.put(None)
            return
        lines.put(line)


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="rust-mentor", description="Level-based Rust tutoring in the terminal")
    parser.add_argument("command", nargs="?", default="play", choices=["play"])
    parser.add_argument("--settings", type=Path, default=None, help="settings JSON file")
    parser.add_argument("--log-file", type=Path, default=None, help="log file path")
    parser.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)
    parser.add_argument("--output-dir", type=Path, default=None, help="where generated Cargo projects are written")
    args = parser.parse_args(argv)

    configure_logging(args.log_file or default_log_path(), args.log_level)
    try:
        session = _service(args.settings, args.output_dir)
    except (OSError, ValueError) as exc:
        logger.error("Startup failed: %s", exc)
        print(f"rust-mentor: {exc}")
        return 1
    return play_shell(session=session)


def play_shell(
    input_fn: InputFn = input,
    print_fn: PrintFn = print,
    session: TutorSession | None = None,
    tick_seconds: float = TICK_SECONDS,
) -> int:
    """Run the event loop until the learner quits or input ends.

    Input is read on a background thread so the session keeps polling its
    outstanding request while the learner is idle.
    """
    session = session or _service()
    lines: queue.Queue[str | None] = queue.Queue()
    reader = threading.Thread(target=_read_lines, args=(input_fn, lines), name="rust-mentor-input", daemon=True)
    reader.start()
    shown: list[str] | None = None
    try:
        while session.is_running:
            screen = render(session)
            if screen != shown:
                print_fn("\n".join(screen))
                shown = screen
            try:
                line = lines.get(timeout=tick_seconds)
            except queue.Empty:
                session.tick()
                continue
            if line is None:
                break
            for key in parse_keys(line):
                session.handle_key(key)
                if not session.is_running:
                    break
            session.tick()
    finally:
        session.close()
    return 0


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
