"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_grab_start(logger: logging.Logger) -> None:
    """Log grab run start."""
    logger.info(f"EPG grab started at {datetime.now(timezone.utc).isoformat()}")


def log_grab_end(logger: logging.Logger) -> None:
    """Log grab run end."""
    logger.info(f"EPG grab completed at {datetime.now(timezone.utc).isoformat()}")


def log_merge_summary(
    logger: logging.Logger,
    channels_count: int,
    programmes_count: int,
    added_count: int
) -> None:
    """
    Log merge operation summary.

    Args:
        logger: Logger instance
        channels_count: Number of channels in the working set
        programmes_count: Number of programmes in the working set
        added_count: Number of programmes added by this run
    """
    logger.info(
        f"Merge summary - Channels: {channels_count}, Programmes: {programmes_count} "
        f"({added_count} new)"
    )
