"""Storage driver abstraction used by the registry host.

Defines the fixed set of capabilities a registry needs from a blob store
(content get/put, stream read/write, stat, list, move, delete, url_for).
Backends implement StorageDriver so the host can swap them without
touching its own code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List, Optional

from bos_driver.exceptions import InvalidOffsetError, InvalidPathError, UnsupportedMethodError


@dataclass(frozen=True)
class FileInfo:
    """Result of a stat call."""

    path: str
    size: Optional[int]  # None for directories
    is_dir: bool


class StorageDriver(ABC):
    """Abstract base class for registry storage drivers.

    Paths are slash-delimited strings chosen by the registry; a driver
    maps them onto whatever its backend uses for addressing.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the name the driver is registered under."""
        pass

    @abstractmethod
    def get_content(self, path: str) -> bytes:
        """Return the full content stored at path.

        Raises:
            PathNotFoundError: If nothing is stored at path
        """
        pass

    @abstractmethod
    def put_content(self, path: str, contents: bytes) -> None:
        """Store contents at path, replacing any existing object."""
        pass

    @abstractmethod
    def reader(self, path: str, offset: int = 0) -> BinaryIO:
        """Open a read stream for the object at path.

        The caller owns the returned stream and must close it.

        Raises:
            PathNotFoundError: If nothing is stored at path
            InvalidOffsetError: If offset is negative
        """
        pass

    @abstractmethod
    def write_stream(self, path: str, offset: int, source: BinaryIO) -> int:
        """Write everything read from source to path.

        Returns:
            Total number of bytes consumed from source
        """
        pass

    @abstractmethod
    def stat(self, path: str) -> FileInfo:
        """Describe the object or directory at path.

        Raises:
            PathNotFoundError: If nothing is stored at or under path
        """
        pass

    @abstractmethod
    def list(self, path: str) -> List[str]:
        """Return the immediate children of path."""
        pass

    @abstractmethod
    def move(self, source_path: str, dest_path: str) -> None:
        """Move the object at source_path to dest_path."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete the object at path and everything stored beneath it."""
        pass

    def url_for(self, path: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Return a URL that serves the content at path.

        Not all backends support this.

        Raises:
            UnsupportedMethodError: If the backend cannot produce URLs
        """
        raise UnsupportedMethodError("url_for", driver=self.name())

    def _check_path(self, path: str) -> None:
        if not isinstance(path, str) or not path:
            raise InvalidPathError(str(path), driver=self.name())

    def _check_offset(self, path: str, offset: int) -> None:
        if offset < 0:
            raise InvalidOffsetError(path, offset, driver=self.name())
