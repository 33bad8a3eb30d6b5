import argparse
import asyncio
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from rich.console import Console

from report import ReportScheduler, build_report
from scanner import DirectoryScanner, list_root_entries
from settings import DEFAULT_INTERVAL_MS, DISPLAY_NAME, PROGRAM_NAME, ScanSettings, logger, setup_logger
from ui import FrameRenderer, KeyWatcher

EXAMPLES = f"""
examples:
  {PROGRAM_NAME}
  {PROGRAM_NAME} .
  {PROGRAM_NAME} --follow-link .
  {PROGRAM_NAME} --no-link .
  {PROGRAM_NAME} --interval 250 /var
"""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def _interval(value):
    try:
        interval = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid interval: {value}") from None
    if interval < 0:
        raise argparse.ArgumentTypeError(f"invalid interval: {value}")
    return interval


def create_parser():
    parser = _ArgumentParser(
        prog=PROGRAM_NAME,
        description=f"{DISPLAY_NAME} - live disk usage of the entries of a directory.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "dir",
        nargs="?",
        default=".",
        help="directory to scan, default is the current directory",
    )
    parser.add_argument(
        "-l",
        "--follow-link",
        dest="follow_links",
        action="store_true",
        default=False,
        help="follow symbolic links",
    )
    parser.add_argument(
        "-n",
        "--no-link",
        dest="follow_links",
        action="store_false",
        help="measure symbolic links themselves (default)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=_interval,
        default=DEFAULT_INTERVAL_MS,
        metavar="MS",
        help=f"interval of report, default is {DEFAULT_INTERVAL_MS}ms",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        help="write debug logs to PATH",
    )
    parser.add_argument("-V", "--version", action="version", version=DISPLAY_NAME)
    return parser


def parse_args(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)
    if not os.path.exists(args.dir):
        parser.error(f"directory not found: {args.dir}")
    if not os.path.isdir(args.dir):
        parser.error(f"not a directory: {args.dir}")
    return ScanSettings(
        target=args.dir,
        follow_links=args.follow_links,
        interval_ms=args.interval,
        log_file=args.log_file,
    )


async def scan_and_report(settings, console, stdin=None):
    """Scan ``settings.target`` while keeping the report on ``console`` up to date."""
    roots = list_root_entries(settings.target)
    renderer = FrameRenderer(console)
    executor = ThreadPoolExecutor(max_workers=(os.cpu_count() or 1) * 2)
    scanner = DirectoryScanner(follow_links=settings.follow_links, executor=executor)

    def render():
        width, height = console.size
        renderer.render(build_report(scanner.roots, scanner.pending, width, height))

    scheduler = ReportScheduler(render, lambda: scanner.finished, settings.interval_ms)
    scanner.on_progress = scheduler.on_progress
    watcher = KeyWatcher(stdin)
    watcher.start()
    try:
        scanner.scan(roots)
        scheduler.on_progress()

        scan_done = asyncio.ensure_future(scanner.wait())
        key_pressed = asyncio.ensure_future(watcher.pressed.wait())
        done, _ = await asyncio.wait({scan_done, key_pressed}, return_when=asyncio.FIRST_COMPLETED)
        key_pressed.cancel()
        if scan_done not in done:
            scan_done.cancel()
            scanner.cancel()
            logger.debug("Scan of %s aborted with %d operations pending", settings.target, scanner.pending)
            return 0
        scan_done.result()
        logger.debug("Scan of %s finished after %d renders", settings.target, scheduler.renders)
        return 0
    finally:
        watcher.close()
        renderer.end()
        executor.shutdown(wait=False, cancel_futures=True)


def run(argv=None, console=None, stdin=None):
    settings = parse_args(argv)
    setup_logger(settings.log_file)
    if console is None:
        console = Console()
    try:
        return asyncio.run(scan_and_report(settings, console, stdin))
    except KeyboardInterrupt:
        return 0
    except OSError as e:
        logger.error("Error: %s", e)
        return 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
