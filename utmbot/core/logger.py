import logging
import os

LOG_LEVEL = os.getenv("UTMBOT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once; later calls are no-ops (basicConfig semantics)."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
