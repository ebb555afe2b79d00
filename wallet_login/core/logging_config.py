# wallet_login/core/logging_config.py
import logging
import sys

PACKAGE_LOGGER = "wallet_login"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the package logger, once."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper())

    # Console handler
    if not logger.handlers:
        ch = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(LOG_FORMAT)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger
