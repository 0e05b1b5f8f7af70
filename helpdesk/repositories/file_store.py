"""File Store - Attachment bytes on local disk"""
import os
from typing import Iterator, Optional

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class LocalFileStore:
    """
    Stores attachment bytes under a base directory

    Paths handed in and out are relative to the base path, one
    sub-directory per ticket.
    """

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = base_path or settings.attachments_base_path
        os.makedirs(self.base_path, exist_ok=True)

    def _full_path(self, relative_path: str) -> str:
        full_path = os.path.normpath(os.path.join(self.base_path, relative_path))
        base = os.path.normpath(self.base_path)
        if os.path.commonpath([base, full_path]) != base:
            raise ValueError(f"Path escapes storage root: {relative_path}")
        return full_path

    def save(self, ticket_id: str, stored_name: str, content: bytes) -> str:
        """
        Write bytes for a ticket

        Returns:
            Path relative to the base path
        """
        relative_path = os.path.join(ticket_id, stored_name)
        full_path = self._full_path(relative_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(content)
        logger.debug(f"Stored file: {relative_path}", extra={"ticket_id": ticket_id})
        return relative_path

    def open_iterator(self, relative_path: str, chunk_size: int = 1024 * 1024) -> Iterator[bytes]:
        """
        Generator that yields file in chunks for streaming

        Raises:
            FileNotFoundError: If the file is gone
        """
        full_path = self._full_path(relative_path)
        if not os.path.exists(full_path):
            raise FileNotFoundError(full_path)

        def _iterate() -> Iterator[bytes]:
            with open(full_path, "rb") as f:
                while chunk := f.read(chunk_size):
                    yield chunk

        return _iterate()

    def delete(self, relative_path: str) -> bool:
        """Remove stored bytes; False if they were already gone"""
        full_path = self._full_path(relative_path)
        if not os.path.exists(full_path):
            return False
        os.remove(full_path)
        return True
