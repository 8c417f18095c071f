"""
Command-Line Interface for the Present slideshow presenter.

This module handles parsing of command-line arguments, sets up logging,
and initializes and runs the presenter host.
"""

import argparse
import importlib.metadata
import logging
import sys
from pathlib import Path

import coloredlogs

from . import config
from .app import PresenterApp
from .persistence import StoragePaths

# Setup a dedicated logger for this application
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Present a list of web pages and images full-screen, with a phone remote control.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {importlib.metadata.version('present-slides')}",
        help="Show the version number and exit."
    )
    parser.add_argument(
        "slides_file",
        nargs="?",
        default=None,
        help="Text file with one slide URL per line.\n"
             "Defaults to the auto-saved slide list in the data directory."
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory for the saved slide list, theme and image cache.\n"
             "Default: $PRESENT_HOME or the XDG data directory."
    )
    parser.add_argument(
        "--host",
        default=config.DEFAULT_HOST,
        help=f"Address the remote control binds to. Default: {config.DEFAULT_HOST}"
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=config.DEFAULT_PORT,
        help=f"Port of the remote control. Default: {config.DEFAULT_PORT}"
    )
    parser.add_argument(
        "--no-remote",
        action="store_true",
        help="Do not start the remote control service."
    )
    parser.add_argument(
        "--play",
        action="store_true",
        help="Start presenting immediately."
    )
    parser.add_argument(
        "--start-index",
        type=int,
        default=1,
        metavar="N",
        help="Slide number to start from (1-based). Default: 1"
    )
    parser.add_argument(
        "--recache",
        action="store_true",
        help="Download every image slide again instead of reusing the cache."
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Wipe the image cache before starting."
    )
    parser.add_argument(
        "--open-browser",
        action="store_true",
        help="Show slides in the system web browser while presenting."
    )
    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default=config.DEFAULT_LOG_LEVEL,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help=f"Set the logging level. Default: {config.DEFAULT_LOG_LEVEL}"
    )
    return parser


def main():
    """
    The main entry point for the application.

    Parses command-line arguments, sets up logging, and runs the presenter
    until it is interrupted.
    """
    args = build_parser().parse_args()

    # --- Setup Logging ---
    log_level_upper = args.log_level.upper()
    logging.basicConfig(level=getattr(logging, log_level_upper, logging.INFO))
    coloredlogs.install(
        level=log_level_upper,
        logger=logger,
        fmt='%(asctime)s %(levelname)-8s %(name)s: %(message)s'
    )
    logging.getLogger().setLevel(getattr(logging, log_level_upper, logging.INFO))

    # --- Application Initialization ---
    try:
        paths = StoragePaths(args.data_dir) if args.data_dir else StoragePaths.default()
        app = PresenterApp(
            paths=paths,
            slides_file=args.slides_file,
            host=args.host,
            port=args.port,
            enable_remote=not args.no_remote,
            open_browser=args.open_browser,
        )
        app.setup(clear_cache=args.clear_cache, recache=args.recache)

        if app.controller.slides:
            if args.start_index != 1:
                app.controller.select(args.start_index - 1)
            if args.play:
                app.controller.play()

        app.run()

    except FileNotFoundError:
        logger.error(f"The specified slide list does not exist: {args.slides_file}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"An unexpected error occurred: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
