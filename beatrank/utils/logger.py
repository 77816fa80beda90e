import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from beatrank.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def _file_handler(log_dir: str, formatter: logging.Formatter) -> Optional[logging.FileHandler]:
    """Create the dated job log file handler, or None when file logging is off"""
    if not log_dir:
        return None

    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(
        path / f'beatrank_{datetime.now().strftime("%Y%m%d")}.log',
        encoding='utf-8'
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler

def setup_logger(name: str) -> logging.Logger:
    """Setup a logger for batch jobs and services with consistent formatting"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Refresh jobs run unattended, failures are only visible here
    file_handler = _file_handler(Config.LOG_DIR, formatter)
    if file_handler:
        logger.addHandler(file_handler)

    return logger
