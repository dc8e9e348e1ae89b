import logging
import sys
import os
from logging.handlers import RotatingFileHandler

# Log directory can be moved with DISK_MANAGER_LOG_DIR (tests point it at a temp dir)
LOG_DIR = os.environ.get("DISK_MANAGER_LOG_DIR", os.path.join(os.getcwd(), "logs"))
LOG_LEVEL = os.environ.get("DISK_MANAGER_LOG_LEVEL", "DEBUG").upper()

# Configure logging format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

def setup_logger(name: str, log_file: str = None) -> logging.Logger:
    """
    Set up a logger with both file and console handlers

    Args:
        name: Name of the logger (usually __name__)
        log_file: Optional specific log file name, defaults to module name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)

    # Modules may be re-imported (uvicorn reload, test collection)
    if logger.handlers:
        return logger

    os.makedirs(LOG_DIR, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(formatter)

    if log_file is None:
        # Use module name as log file name
        log_file = f"{name.split('.')[-1]}.log"

    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=5*1024*1024,  # 5MB
        backupCount=3,
        encoding='utf-8'
    )
    file_handler.setLevel(LOG_LEVEL)
    file_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
    # Handlers are attached here, don't duplicate through uvicorn's root logger
    logger.propagate = False

    return logger
