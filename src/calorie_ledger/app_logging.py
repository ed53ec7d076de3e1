"""Logging configuration helpers."""

import logging

_QUIET_LIBRARIES = ("pymongo", "httpx", "openai")


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the calorie_ledger logger."""
    logger = logging.getLogger("calorie_ledger")
    logger.setLevel(level.upper())
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
