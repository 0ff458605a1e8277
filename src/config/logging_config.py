"""
Derby Rounds - Logging Configuration
"""

import logging

from src.config.settings import Settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the root logger."""
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=_FORMAT)

    # web3 and httpx are chatty at DEBUG
    for noisy in ("web3", "httpx", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
