"""Logging configuration."""

import logging


def setup_logging(
    level: str = "INFO",
    debug_http: bool = False,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        debug_http: Enable verbose httpx and asyncssh logging
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    noisy_level = logging.DEBUG if debug_http else logging.WARNING
    for name in ("httpx", "httpcore", "asyncssh"):
        logging.getLogger(name).setLevel(noisy_level)
