from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from .app import MusicPlayerApp
from .commands import doctor as cmd_doctor
from .commands import library as cmd_library
from .config import Settings, find_config
from .errors import PersistenceError

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    """Drops library root prefixes from log messages."""

    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
            message = message.replace(root, "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        return self._shorten(super().format(record))


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level: str, roots: list[Path], warn_log_path: Path) -> WarningBufferHandler:
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)

    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(file_handler)
    return warn_buffer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Local music library with catalog enrichment")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    network = parser.add_mutually_exclusive_group()
    network.add_argument(
        "--offline",
        action="store_true",
        help="Treat the device as offline (serve the cached library only)",
    )
    network.add_argument(
        "--online",
        action="store_true",
        help="Skip the connectivity probe and assume the network is reachable",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    sync_parser = subparsers.add_parser(
        "sync", help="Scan the library, enrich it from Spotify and cache the result"
    )
    sync_parser.add_argument("--json", action="store_true", help="Emit JSON records to stdout")
    cached_parser = subparsers.add_parser("cached", help="Show the cached library snapshot")
    cached_parser.add_argument("--json", action="store_true", help="Emit JSON records to stdout")
    subparsers.add_parser("clear-cache", help="Remove the cached library snapshot")
    doctor_parser = subparsers.add_parser("doctor", help="Run basic config/store/credential checks")
    doctor_parser.add_argument(
        "--providers",
        action="store_true",
        help="Also validate Spotify credentials with network calls",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings.load(find_config(args.config))
    if args.offline:
        settings.network.assume_online = False
    elif args.online:
        settings.network.assume_online = True

    warn_log_path = Path.cwd() / "musicplayer-warnings.log"
    warn_buffer = configure_logging(args.log_level, list(settings.library.roots), warn_log_path)

    app: MusicPlayerApp | None = None
    try:
        if args.command == "doctor":
            report = cmd_doctor.run(settings, validate_providers_online=args.providers)
            for line in report.checks:
                print(line)
            if not report.ok:
                raise SystemExit(1)
            return
        try:
            app = MusicPlayerApp.create(settings)
        except PersistenceError as exc:
            raise SystemExit(str(exc)) from exc
        match args.command:
            case "sync":
                state = asyncio.run(cmd_library.sync(app))
                cmd_library.show(state, json_output=args.json)
            case "cached":
                if not cmd_library.cached(app, json_output=args.json):
                    raise SystemExit(1)
            case "clear-cache":
                cmd_library.clear_cache(app)
            case _:
                parser.error("Unknown command")
    finally:
        if app:
            app.close()
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
