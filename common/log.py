import logging

from common.config import Settings

_configured = False


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once per process."""
    global _configured
    if _configured:
        return
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)
    logging.getLogger("pika").setLevel(logging.WARNING)
    _configured = True
