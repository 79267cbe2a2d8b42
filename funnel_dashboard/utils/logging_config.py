"""
Logging setup for the funnel dashboard.
"""
import logging
import os

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Log level name; defaults to the LOG_LEVEL environment variable
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # SQL echo is too noisy outside of debugging
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _configured = True
