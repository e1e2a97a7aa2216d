# services/attachment_store.py
"""
Staging area for uploaded attachments.

Uploaded files are written to a fixed upload directory, read back as raw
bytes for the outgoing message, and removed once the send call completes.
Files are keyed by their sanitized filename, so two concurrent requests
uploading the same filename write to the same path.
"""

import logging
import os
from pathlib import Path
from typing import Union
from uuid import uuid4

from werkzeug.utils import secure_filename

from core.exceptions import AttachmentFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_MB = 25
MAX_FILE_SIZE_BYTES = DEFAULT_MAX_FILE_SIZE_MB * 1024 * 1024


class AttachmentStore:
    """Filesystem store addressed by filename under one upload directory"""

    def __init__(self, upload_dir: Union[str, Path], max_file_size: int = MAX_FILE_SIZE_BYTES):
        self.upload_dir = Path(upload_dir)
        self.max_file_size = max_file_size

    def path_for(self, filename: str) -> Path:
        """
        Resolve the staging path for an uploaded filename.

        Names that sanitize to nothing (non-ASCII names, for instance) are
        staged under a generated name that keeps the original extension.

        Raises:
            AttachmentFailure: If no filename was given at all
        """
        if not filename or not filename.strip():
            raise AttachmentFailure(f"Unusable attachment filename: {filename!r}")

        safe_name = secure_filename(filename)
        if not safe_name or not secure_filename(Path(filename).stem):
            extension = secure_filename(Path(filename).suffix.lstrip('.'))
            safe_name = f"{uuid4().hex}.{extension}" if extension else uuid4().hex
            logger.debug(f"Staging {filename!r} as {safe_name}")
        return self.upload_dir / safe_name

    def write(self, filename: str, content: bytes) -> str:
        """
        Stage attachment content on disk.

        Args:
            filename: Original filename from the upload
            content: Binary content

        Returns:
            Path the content was written to

        Raises:
            AttachmentFailure: If the file is too large or cannot be written
        """
        if len(content) > self.max_file_size:
            raise AttachmentFailure(
                f"Attachment too large: {filename} "
                f"({len(content):,} bytes > {self.max_file_size:,} limit)"
            )

        path = self.path_for(filename)
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise AttachmentFailure(f"Failed to stage attachment {filename}: {e}") from e

        logger.info(f"{filename} staged at {path}")
        return str(path)

    def read(self, path: Union[str, Path]) -> bytes:
        """
        Read staged content back.

        Raises:
            AttachmentFailure: If the file is missing or unreadable
        """
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise AttachmentFailure(f"Failed to read staged attachment {path}: {e}") from e

    def remove(self, path: Union[str, Path]) -> None:
        """Discard a staged file; failures are logged, not raised"""
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove staged attachment {path}: {e}")
