# diskmanager/backend/archiver.py

import io
import os
import zipfile
from pathlib import Path
from shared.logging_config import setup_logger

logger = setup_logger(__name__)

def _raise_walk_error(error: OSError):
    raise error

def build_zip_archive(directory: Path) -> bytes:
    """
    Pack every regular file under ``directory`` into an in-memory zip.

    Entries are stored uncompressed and named relative to the directory's
    parent, so the archive unpacks into a folder carrying the directory's own
    name. Directories themselves are not written as entries, which means empty
    subdirectories are dropped. Members follow os.walk order.

    Any OSError while reading a file aborts the whole archive.
    """
    directory = Path(directory)
    base = directory.parent
    buffer = io.BytesIO()
    file_count = 0

    logger.info(f"Creating zip archive for: {directory}")
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as zipf:
        for root, dirs, files in os.walk(directory, onerror=_raise_walk_error):
            logger.debug(f"Processing directory for zip: {root}")
            for file in files:
                file_path = Path(root) / file
                if not file_path.is_file():
                    continue
                arcname = file_path.relative_to(base)
                zipf.write(file_path, arcname.as_posix())
                file_count += 1
                logger.debug(f"Added to zip: {file_path} as {arcname.as_posix()}")

    data = buffer.getvalue()
    logger.info(f"Zip archive for {directory} built: {file_count} files, {len(data)} bytes")
    return data
