# diskmanager/shared/config.py

import os
import socket
from pathlib import Path
from dataclasses import dataclass
from shared.logging_config import setup_logger

logger = setup_logger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 3000
DEFAULT_MAX_BODY_SIZE = 1024 * 1024 * 1024  # 1 GiB

@dataclass
class Settings:
    storage_dir: Path
    host: str = DEFAULT_HOST
    http_port: int = DEFAULT_HTTP_PORT
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

def find_available_port(start_port: int = 5000, end_port: int = 6000) -> int:
    """
    Finds an available TCP port within a specified range.
    Tries to bind a socket to the port to check availability.
    """
    logger.info(f"Attempting to find an available port between {start_port} and {end_port}...")
    for port in range(start_port, end_port + 1):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.settimeout(0.1)
                s.bind(("0.0.0.0", port))
                logger.info(f"Port {port} is available.")
                return port
        except OSError as e:
            logger.debug(f"Port {port} is in use or unavailable: {e}")

    logger.critical(f"No available port found in range {start_port}-{end_port}. Using default {start_port} (might fail).")
    return start_port

def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {raw!r}. Using {default}.")
        return default

def load_settings() -> Settings:
    """Build Settings from the environment."""
    storage_dir = Path(os.environ.get("DISK_MANAGER_STORAGE_DIR", "storage"))

    # 0 means search for a free port
    http_port = _int_from_env("HTTP_PORT", DEFAULT_HTTP_PORT)
    if http_port == 0:
        http_port = find_available_port(start_port=5000, end_port=6000)
    else:
        logger.info(f"Using HTTP port: {http_port}")

    max_body_size = _int_from_env("DISK_MANAGER_MAX_BODY_SIZE", DEFAULT_MAX_BODY_SIZE)
    if max_body_size <= 0:
        logger.warning(f"Body size limit must be positive, got {max_body_size}. Using {DEFAULT_MAX_BODY_SIZE}.")
        max_body_size = DEFAULT_MAX_BODY_SIZE

    settings = Settings(
        storage_dir=storage_dir,
        host=os.environ.get("HOST", DEFAULT_HOST),
        http_port=http_port,
        max_body_size=max_body_size,
    )
    logger.info(f"Storage directory: {settings.storage_dir}")
    return settings
