import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "chatexport"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def level_for(verbose: bool = False, quiet: bool = False) -> str:
    """
    Pick a log level from command-line verbosity flags.

    Fallbacks during rendering are logged as warnings, so they stay
    visible unless --quiet is given.
    """
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    return "WARNING"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up logging configuration for chatexport.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging output
        format_string: Optional custom format string for log messages
        force: If True, reconfigure even if handlers exist
        stream: Console stream (default: stderr, so exports can go to stdout)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # Only clear and reconfigure if forced or no handlers exist
    if force or not logger.handlers:
        logger.handlers.clear()

        handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    # No propagation to the root logger, or records print twice
    logger.propagate = False

    return logger
