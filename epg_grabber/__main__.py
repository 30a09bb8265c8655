"""
Command line entry point.

    python -m epg_grabber grab --channels ct1,primaCOOL --days 3 --cache epg.json
    python -m epg_grabber serve --port 8000
"""
import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from epg_grabber import __version__
from epg_grabber.config import CustomSettings, setup_logging
from epg_grabber.errors import ConfigurationError, GrabberError


logger = logging.getLogger("epg_grabber")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epg_grabber",
        description="Grab TV listings into an incremental cache and render XMLTV",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", dest="log_level", help="logging level (default: LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    grab = subparsers.add_parser("grab", help="run one grab and write XMLTV")
    grab.add_argument("--channels", help="comma-separated channel ids")
    grab.add_argument("--offset", type=int, help="days from today to start (max 7)")
    grab.add_argument("--days", type=int, help="number of days to grab (max 7)")
    grab.add_argument("--cache", dest="cache_path", help="cache file path")
    grab.add_argument("--no-cache", action="store_true", help="ignore and do not write the cache")
    grab.add_argument("--output", dest="output_path", help="XMLTV output file (default: stdout)")

    serve = subparsers.add_parser("serve", help="run the HTTP service with scheduled grabs")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def settings_from_args(args: argparse.Namespace) -> CustomSettings:
    """Build settings with command line values overriding the environment."""
    overrides = {
        key: value
        for key, value in {
            "channels": args.channels,
            "offset": args.offset,
            "days": args.days,
            "cache_path": args.cache_path,
            "output_path": args.output_path,
            "log_level": args.log_level,
        }.items()
        if value is not None
    }
    if args.no_cache:
        overrides["cache_path"] = None
    return CustomSettings(**overrides)


def run_grab(args: argparse.Namespace) -> int:
    from epg_grabber.services.grab_service import GrabPipeline

    try:
        config = settings_from_args(args)
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    config.log_summary()

    pipeline = GrabPipeline(config)
    try:
        summary = asyncio.run(pipeline.run())
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except GrabberError as e:
        logger.error("Grab failed: %s", e)
        return 1
    except OSError as e:
        logger.error("Cannot write grab results: %s", e)
        return 1

    logger.info(
        "Grab finished: %s programmes on %s channels, cache interval [%s, %s)",
        summary.programmes,
        summary.channels,
        summary.interval_start,
        summary.interval_end,
    )
    if not config.output_path and pipeline.document is not None:
        sys.stdout.buffer.write(pipeline.document)
        sys.stdout.flush()
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("epg_grabber.main:app", host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "serve":
        return run_serve(args)
    return run_grab(args)


if __name__ == "__main__":
    sys.exit(main())
