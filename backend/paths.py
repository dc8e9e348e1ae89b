# diskmanager/backend/paths.py

import os
from pathlib import Path
from typing import Optional
from shared.logging_config import setup_logger

logger = setup_logger(__name__)

class InvalidPathError(ValueError):
    """Raised when a client path would leave the storage root."""

    def __init__(self, message: str = "Invalid path"):
        super().__init__(message)

def resolve_path(root: Path, subpath: Optional[str] = None) -> Path:
    """
    Map a client-supplied path onto the storage root.

    Any path containing ".." is rejected outright, wherever it appears.
    Leading slashes are dropped so "/docs" and "docs" resolve the same way,
    and an empty or missing path means the root itself. The result is not
    checked for existence.
    """
    sub = subpath or ""

    if ".." in sub:
        logger.warning(f"Rejected path with parent reference: {sub!r}")
        raise InvalidPathError()

    clean_sub = sub.lstrip("/")
    target = Path(root) / clean_sub

    # Lexical containment check, catches separators Path treats as absolute (e.g. "C:\\" on Windows)
    root_norm = os.path.normpath(os.path.abspath(root))
    target_norm = os.path.normpath(os.path.abspath(target))
    if target_norm != root_norm and not target_norm.startswith(root_norm.rstrip(os.sep) + os.sep):
        logger.warning(f"Rejected path outside storage root: {sub!r} -> {target_norm}")
        raise InvalidPathError()

    return target
