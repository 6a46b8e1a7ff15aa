# src/plugin_updater/cli.py

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from plugin_updater import log_utils
from plugin_updater.config import build_registry, get_config_path, load_config
from plugin_updater.constants import (
    DEFAULT_WORKERS,
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    MAX_WORKERS,
)
from plugin_updater.exceptions import ConfigurationError
from plugin_updater.log_utils import logger
from plugin_updater.scanner import scan_existing_jars
from plugin_updater.update import (
    InstalledVersions,
    QueryCache,
    SourceContext,
    TempStorage,
    UpdatePipeline,
)


def _worker_count(value: str) -> int:
    try:
        workers = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {value}") from None
    if workers < 1:
        raise argparse.ArgumentTypeError("worker count must be at least 1")
    return min(workers, MAX_WORKERS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plugin-updater",
        description="plugin-updater - keeps server plugin jars up to date",
    )
    parser.add_argument(
        "-t",
        "--target-folder",
        required=True,
        help="Folder holding the plugin jars to update",
    )
    parser.add_argument(
        "-p",
        "--plugin",
        help="Only check the plugin with this name",
    )
    parser.add_argument(
        "-c",
        "--check-only",
        action="store_true",
        help="Report available updates without downloading them",
    )
    parser.add_argument(
        "-d",
        "--dont-link",
        action="store_true",
        help="Store versioned jars but leave the plugin links untouched",
    )
    parser.add_argument("--config", help="Path to the configuration file")
    parser.add_argument(
        "--workers",
        type=_worker_count,
        default=DEFAULT_WORKERS,
        help=f"Number of plugins to check in parallel (max {MAX_WORKERS})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (overrides PLUGIN_UPDATER_LOG_LEVEL)",
    )
    parser.add_argument("--log-dir", help="Also write a rotating log file here")
    parser.add_argument(
        "--no-scan",
        action="store_true",
        help="Skip looking for project links in unmanaged jars",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """
    Run an update with parsed arguments and return the process exit code.

    Configuration errors (an unreadable file or duplicate source names) end
    the run with EXIT_CONFIG_ERROR. Everything else is reported per plugin.
    """
    target_dir = Path(args.target_folder).expanduser()
    if not target_dir.is_dir():
        logger.warning(f"Target folder {target_dir} does not exist!")
        return EXIT_OK

    query_cache = QueryCache()
    temp_storage = TempStorage()
    context = SourceContext(query_cache=query_cache, temp_storage=temp_storage)
    try:
        try:
            config = load_config(get_config_path(args.config))
            registry = build_registry(config, context)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_CONFIG_ERROR

        plugins = None
        if args.plugin:
            plugin = registry.get_plugin(args.plugin)
            if plugin is None:
                logger.warning(f"No plugin found with name {args.plugin}")
                return EXIT_OK
            plugins = [plugin]
        elif not args.no_scan:
            scan_existing_jars(target_dir, registry)

        installed = InstalledVersions.for_target(target_dir)
        pipeline = UpdatePipeline(
            registry,
            target_dir,
            installed,
            temp_storage,
            check_only=args.check_only,
            dont_link=args.dont_link,
            workers=args.workers,
        )
        summary = pipeline.run(plugins)
        if summary.changed and not args.check_only:
            installed.flush()
        return EXIT_OK
    finally:
        temp_storage.cleanup()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the plugin-updater command-line interface.

    argparse exits with status 2 on usage errors before anything runs.
    """
    args = build_parser().parse_args(argv)
    if args.log_level:
        log_utils.set_log_level(args.log_level)
    if args.log_dir:
        log_utils.add_file_logging(Path(args.log_dir).expanduser(), args.log_level or "INFO")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
