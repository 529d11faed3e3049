"""Custom exception hierarchy for the BOS storage driver.

This module defines the errors a registry host sees when it talks to
the driver. Remote SDK failures are wrapped rather than leaked, so a
host only has to know about this hierarchy.

All exceptions inherit from StorageDriverError for easy catching and handling.
"""

from typing import Any, Optional


class StorageDriverError(Exception):
    """Base exception for all storage driver errors.

    Attributes:
        message: Human-readable error message
        **kwargs: Additional context stored as attributes
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        """Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            **kwargs: Additional context (e.g., path, bucket, upload_id)
        """
        super().__init__(message)
        self.message = message

        # Store all kwargs as instance attributes for context
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class PathNotFoundError(StorageDriverError):
    """Raised when no object exists at the requested path.

    Common scenarios:
    - Reading or stat-ing a blob that was never written
    - Moving from a source path that does not exist
    - Listing a prefix when the listing call itself fails
    """

    def __init__(self, path: str, driver: str = "bos", **kwargs: Any) -> None:
        super().__init__(f"{driver}: Path not found: {path}", path=path, driver=driver, **kwargs)


class InvalidPathError(StorageDriverError):
    """Raised when a path cannot be used as an object key."""

    def __init__(self, path: str, driver: str = "bos", **kwargs: Any) -> None:
        super().__init__(f"{driver}: invalid path: {path!r}", path=path, driver=driver, **kwargs)


class InvalidOffsetError(StorageDriverError):
    """Raised when a stream operation is given a negative offset."""

    def __init__(self, path: str, offset: int, driver: str = "bos", **kwargs: Any) -> None:
        super().__init__(
            f"{driver}: invalid offset: {offset} for path: {path}",
            path=path,
            offset=offset,
            driver=driver,
            **kwargs,
        )


class UnsupportedMethodError(StorageDriverError):
    """Raised when the driver does not implement a capability (e.g. url_for)."""

    def __init__(self, method: str = "url_for", driver: str = "bos", **kwargs: Any) -> None:
        super().__init__(
            f"{driver}: unsupported method: {method}", method=method, driver=driver, **kwargs
        )


class ConfigurationError(StorageDriverError):
    """Raised when driver configuration is invalid or missing.

    Common scenarios:
    - Missing accesskeyid / accesskeysecret / bucket parameter
    - Unknown driver name requested from a registry
    - Invalid YAML syntax or unset environment variable in a config file
    """

    pass


class TransportError(StorageDriverError):
    """Raised when the remote object-storage API fails.

    This is an opaque passthrough: the SDK exception is chained and kept
    on the ``cause`` attribute so callers can inspect it if they need to.

    Common scenarios:
    - Credentials rejected by the service
    - Network timeout while uploading a part
    - Bucket does not exist
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs: Any) -> None:
        super().__init__(message, cause=cause, **kwargs)


class ObjectNotFoundError(TransportError):
    """Raised by bucket clients when the service reports a missing key."""

    def __init__(self, key: str, cause: Optional[BaseException] = None, **kwargs: Any) -> None:
        super().__init__(f"Object not found: {key}", cause=cause, key=key, **kwargs)
