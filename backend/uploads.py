# diskmanager/backend/uploads.py

from pathlib import Path
from typing import List, Optional
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from shared.logging_config import setup_logger

logger = setup_logger(__name__)

class MalformedMultipartError(ValueError):
    """Raised when a multipart body cannot be parsed."""

def parse_multipart_boundary(content_type: str) -> bytes:
    """Return the boundary of a multipart/form-data Content-Type header."""
    media_type, params = parse_options_header(content_type)
    if media_type.lower() != b"multipart/form-data":
        raise MalformedMultipartError("Invalid multipart request")
    boundary = params.get(b"boundary")
    if not boundary:
        raise MalformedMultipartError("Missing boundary in multipart.")
    return boundary

class MultipartFileWriter:
    """
    Write the file parts of a multipart body into a directory as they arrive.

    Each file part goes straight to ``<target_dir>/<file name>`` and is done
    once the parser reaches the boundary that closes it. Parts without a file
    name are ignored. When the body breaks off or turns malformed, the part
    being written is removed; parts finished before it stay on disk.
    """

    def __init__(self, target_dir: Path, boundary: bytes):
        self.target_dir = target_dir
        self.written: List[Path] = []
        self.complete = False
        self._headers = {}
        self._header_field = b""
        self._header_value = b""
        self._current_path: Optional[Path] = None
        self._current_file = None
        self._parser = MultipartParser(boundary, callbacks={
            "on_part_begin": self._on_part_begin,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_end": self._on_end,
        })

    def _on_part_begin(self):
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int):
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int):
        self._header_value += data[start:end]

    def _on_header_end(self):
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self):
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        if b"filename" not in options:
            logger.debug("Skipping multipart field without a file name")
            return
        filename = Path(options[b"filename"].decode("utf-8", errors="replace")).name
        if not filename or filename == "..":
            logger.debug(f"Skipping part with unusable file name: {options[b'filename']!r}")
            return

        full_path = self.target_dir / filename
        logger.info(f"Uploading file to: {full_path}")
        self._current_file = open(full_path, "wb")
        self._current_path = full_path

    def _on_part_data(self, data: bytes, start: int, end: int):
        if self._current_file is not None:
            self._current_file.write(data[start:end])

    def _on_part_end(self):
        if self._current_file is None:
            return
        self._current_file.close()
        self.written.append(self._current_path)
        logger.info(f"File successfully saved to {self._current_path}")
        self._current_file = None
        self._current_path = None

    def _on_end(self):
        self.complete = True

    def feed(self, chunk: bytes):
        """Parse the next chunk of the body, writing file data as it comes."""
        try:
            self._parser.write(chunk)
        except MultipartParseError as e:
            self.discard_partial()
            raise MalformedMultipartError(str(e)) from e
        except OSError:
            self.discard_partial()
            raise

    def finish(self):
        """Check that the body ended on its closing boundary."""
        try:
            self._parser.finalize()
        except MultipartParseError as e:
            self.discard_partial()
            raise MalformedMultipartError(str(e)) from e
        if not self.complete:
            self.discard_partial()
            raise MalformedMultipartError("Multipart body ended before the closing boundary.")

    def discard_partial(self):
        """Remove the file of a part that never reached its closing boundary."""
        if self._current_file is None:
            return
        self._current_file.close()
        logger.warning(f"Removing incomplete upload: {self._current_path}")
        try:
            self._current_path.unlink()
        except OSError as e:
            logger.error(f"Error cleaning up partial file {self._current_path}: {str(e)}")
        self._current_file = None
        self._current_path = None
