# treewatch/cli.py

"""
Command line interface: print filesystem events below a directory
"""
import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import List, Optional

from .utils.config import Config, load_config
from .utils.logger import log_exception, setup_logging
from .watcher.errors import WatchSetupError
from .watcher.handlers import PrintingObserver
from .watcher.patterns import PatternFilter
from .watcher.watcher import TreeWatcher

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        _apply_arguments(config, args)
        event_kinds = config.watcher.event_kinds()
    except (OSError, ValueError) as e:
        print(f"treewatch: {e}", file=sys.stderr)
        return 2

    setup_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        log_format=config.log_format,
    )

    path_filter = PatternFilter(
        ignore_patterns=config.filters.ignore_patterns,
        ignore_directories=config.filters.ignore_directories,
        include_hidden=config.filters.include_hidden,
    )
    watcher = TreeWatcher(
        config.watcher.root,
        recursive=config.watcher.recursive,
        event_kinds=event_kinds,
        use_polling=config.watcher.use_polling,
        poll_interval=config.watcher.poll_interval,
    )

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="treewatch") as pool:
        try:
            future = watcher.start(pool, PrintingObserver(), path_filter)
        except WatchSetupError as e:
            log_exception(logger, e, f"Failed to watch {watcher.root}")
            return 1

        print(f"Watching {watcher.root} ({len(watcher.registry)} directories). "
              f"Press Ctrl+C to stop.", file=sys.stderr)

        try:
            future.result(timeout=args.duration)
        except FutureTimeoutError:
            logger.debug(f"Stopping after {args.duration}s")
        except KeyboardInterrupt:
            print("\nShutting down...", file=sys.stderr)
        finally:
            watcher.stop()

    logger.info(f"Watcher status: {watcher.get_status()}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treewatch",
        description="Recursively watch a directory tree and print change events",
    )
    parser.add_argument("root", nargs="?", type=Path,
                        help="Directory to watch (default: from config, else home directory)")
    parser.add_argument("--config", type=Path, help="YAML or JSON configuration file")
    parser.add_argument("--no-recursive", dest="recursive", action="store_false", default=None,
                        help="Only watch the root directory itself")
    parser.add_argument("--events", help="Comma separated event kinds (created,deleted,modified)")
    parser.add_argument("--polling", dest="use_polling", action="store_true", default=None,
                        help="Poll the filesystem instead of using OS notifications")
    parser.add_argument("--poll-interval", type=float, help="Polling interval in seconds")
    parser.add_argument("--include-hidden", action="store_true", default=None,
                        help="Watch and report hidden files and directories")
    parser.add_argument("--ignore", action="append", default=[], metavar="PATTERN",
                        help="Ignore files matching PATTERN (repeatable)")
    parser.add_argument("--ignore-dir", action="append", default=[], metavar="PATTERN",
                        help="Do not watch directories matching PATTERN (repeatable)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--log-format", choices=["text", "json", "color"])
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--duration", type=float,
                        help="Stop after this many seconds (default: run until Ctrl+C)")
    return parser


def _apply_arguments(config: Config, args: argparse.Namespace):
    """Override configuration values with the ones given on the command line"""
    if args.root is not None:
        config.watcher.root = args.root.expanduser()
    if args.recursive is not None:
        config.watcher.recursive = args.recursive
    if args.events:
        config.watcher.events = [name for name in args.events.split(",") if name.strip()]
    if args.use_polling is not None:
        config.watcher.use_polling = args.use_polling
    if args.poll_interval is not None:
        config.watcher.poll_interval = args.poll_interval
    if args.include_hidden is not None:
        config.filters.include_hidden = args.include_hidden

    config.filters.ignore_patterns.extend(args.ignore)
    config.filters.ignore_directories.extend(args.ignore_dir)

    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.log_file:
        config.log_file = args.log_file


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
