"""
Logging setup for lead-enricher.

Every module logs through a child of the "lead-enricher" logger, so one
console handler and one rotating file under LOG_DIR receive the whole run.
Messages about a specific lead go through LeadLogger, which prefixes them
with the lead name.
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv


load_dotenv()

ROOT_LOGGER = "lead-enricher"

# Browser and HTTP libraries that flood DEBUG output during a crawl
NOISY_LOGGERS = ("asyncio", "urllib3", "playwright", "filelock", "tldextract")


def setup_logging(
    log_level: str = None,
    log_file: str = None,
) -> logging.Logger:
    """
    Configure the shared lead-enricher logger.

    Args:
        log_level: Log level (default: from LOG_LEVEL env var or INFO)
        log_file: Log file path (default: {LOG_DIR}/lead-enricher.log)

    Returns:
        The configured root logger of the package
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    log_level = log_level.upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
    logger.addHandler(console_handler)

    if log_file is None:
        logs_dir = Path(os.getenv("LOG_DIR", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"{ROOT_LOGGER}.log"

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logger.debug(f"Logging initialized: level={log_level}, file={log_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for one module, e.g. get_logger("site_scraper").

    The shared handlers are installed the first time any module asks.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        setup_logging()
    return root.getChild(name)


class LeadLogger(logging.LoggerAdapter):
    """Prefix every message with the name of the lead being enriched."""

    def process(self, msg, kwargs):
        return f"[{self.extra['lead']}] {msg}", kwargs


def lead_logger(logger: logging.Logger, lead_name: str) -> LeadLogger:
    return LeadLogger(logger, {"lead": lead_name})
