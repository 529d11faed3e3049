"""BOS storage driver for the container registry.

Implements StorageDriver on top of a BucketClient. Objects are stored at
keys equal to their registry paths; directories exist only as shared key
prefixes. Large writes go through multipart upload in fixed-size chunks.

Known limitations:
- move and delete are not transactional
- a failed multipart write leaves its upload session open on the server
- reader() ignores a non-zero offset
"""

import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bos_driver.bucket_client import BosBucketClient, BucketClient, CompletedPart, S3BucketClient
from bos_driver.exceptions import (
    ConfigurationError,
    ObjectNotFoundError,
    PathNotFoundError,
    TransportError,
)
from bos_driver.path_translator import list_children, object_key
from bos_driver.storage_driver import FileInfo, StorageDriver

logger = logging.getLogger(__name__)

DRIVER_NAME = "bos"

# Multipart part size; also the smallest part either service accepts
DEFAULT_CHUNK_SIZE = 5 << 20

DEFAULT_REGION = "bj"

REQUIRED_PARAMETERS = ("accesskeyid", "accesskeysecret", "bucket")


class DriverParameters(BaseModel):
    """Validated driver configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    accesskeyid: str = Field(..., min_length=1, description="BCE access key id")
    accesskeysecret: str = Field(..., min_length=1, description="BCE secret access key")
    bucket: str = Field(..., min_length=1, description="Bucket name")
    endpoint: str = Field("", description="Endpoint override; empty means SDK default")
    protocol: str = Field("bos", description="Wire protocol (bos, s3)")
    region: str = Field(DEFAULT_REGION, description="Region used to derive the S3 endpoint")
    chunksize: int = Field(DEFAULT_CHUNK_SIZE, description="Multipart part size in bytes")

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        """Validate protocol is one of the supported client types."""
        allowed = ["bos", "s3"]
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"protocol must be one of {allowed}, got '{v}'")
        return v

    @field_validator("chunksize")
    @classmethod
    def validate_chunksize(cls, v: int) -> int:
        """Validate chunk size meets the service's minimum part size."""
        if v < DEFAULT_CHUNK_SIZE:
            raise ValueError(f"chunksize must be at least {DEFAULT_CHUNK_SIZE} bytes, got {v}")
        return v

    @classmethod
    def from_mapping(cls, parameters: Mapping[str, Any]) -> "DriverParameters":
        """Build parameters from a registry configuration mapping.

        Raises:
            ConfigurationError: If a required field is missing or a value is invalid
        """
        for name in REQUIRED_PARAMETERS:
            value = parameters.get(name)
            if value is None or str(value) == "":
                raise ConfigurationError(f"No {name} parameter provided", field=name)

        # Null values fall back to the field default
        values: Dict[str, Any] = {
            key: str(value)
            for key, value in parameters.items()
            if key in cls.model_fields and key != "chunksize" and value is not None
        }
        if parameters.get("chunksize") is not None:
            values["chunksize"] = parameters["chunksize"]

        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = str(first["loc"][0]) if first.get("loc") else None
            raise ConfigurationError(
                f"Invalid {field_name} parameter: {first['msg']}", field=field_name
            ) from e

    def build_client(self) -> BucketClient:
        """Create the bucket client these parameters describe."""
        if self.protocol == "s3":
            region = self.region or DEFAULT_REGION
            endpoint = self.endpoint or S3BucketClient.endpoint_for_region(region)
            return S3BucketClient(
                bucket=self.bucket,
                access_key=self.accesskeyid,
                secret_key=self.accesskeysecret,
                endpoint=endpoint,
                region=region,
            )
        return BosBucketClient(
            bucket=self.bucket,
            access_key=self.accesskeyid,
            secret_key=self.accesskeysecret,
            endpoint=self.endpoint or None,
        )


@dataclass
class UploadSession:
    """State of one in-flight multipart upload, owned by a single write."""

    key: str
    upload_id: str
    parts: List[CompletedPart] = field(default_factory=list)

    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1

    def add_part(self, etag: str) -> CompletedPart:
        part = CompletedPart(part_number=self.next_part_number, etag=etag)
        self.parts.append(part)
        return part


def _read_chunk(source: BinaryIO, size: int) -> bytes:
    """Read up to size bytes, stopping early only at end of input."""
    buf = bytearray()
    while len(buf) < size:
        data = source.read(size - len(buf))
        if not data:
            break
        buf.extend(data)
    return bytes(buf)


class BosDriver(StorageDriver):
    """Registry storage driver backed by a BOS bucket.

    Args:
        client: Bucket client the driver issues all requests through
        chunk_size: Part size for multipart writes
    """

    def __init__(self, client: BucketClient, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.client = client
        self.chunk_size = chunk_size

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "BosDriver":
        """Construct a driver from a registry configuration mapping.

        Required parameters: accesskeyid, accesskeysecret, bucket.
        Optional: endpoint, protocol, region, chunksize.

        Raises:
            ConfigurationError: If a required parameter is missing or invalid
        """
        params = DriverParameters.from_mapping(parameters)
        return cls.new(params)

    @classmethod
    def new(cls, params: DriverParameters) -> "BosDriver":
        """Construct a driver from validated parameters."""
        client = params.build_client()
        return cls(client, chunk_size=params.chunksize)

    def name(self) -> str:
        return DRIVER_NAME

    @property
    def bucket(self) -> str:
        return self.client.bucket

    def _log(self, operation: str, path: str, **extra: Any) -> None:
        logger.debug(
            "%s %s",
            operation,
            path,
            extra={"operation": operation, "path": path, "bucket": self.bucket, **extra},
        )

    def get_content(self, path: str) -> bytes:
        """Retrieve the content stored at path as bytes."""
        self._check_path(path)
        self._log("get_content", path)
        try:
            return self.client.get_object(object_key(path))
        except ObjectNotFoundError as e:
            raise PathNotFoundError(path, driver=DRIVER_NAME) from e

    def put_content(self, path: str, contents: bytes) -> None:
        """Store contents at path with a single put."""
        self._check_path(path)
        self._log("put_content", path, size=len(contents))
        self.client.put_object(object_key(path), contents)

    def reader(self, path: str, offset: int = 0) -> BinaryIO:
        """Open a stream over the object at path.

        The stream always starts at byte zero; offset is not applied.
        """
        self._check_path(path)
        self._check_offset(path, offset)
        if offset:
            logger.debug(
                "Ignoring read offset",
                extra={"path": path, "offset": offset, "bucket": self.bucket},
            )
        self._log("reader", path)
        try:
            return self.client.open_object(object_key(path))
        except ObjectNotFoundError as e:
            raise PathNotFoundError(path, driver=DRIVER_NAME) from e

    def write_stream(self, path: str, offset: int, source: BinaryIO) -> int:
        """Write everything read from source to path.

        Payloads smaller than one chunk are stored with a single put; the
        multipart session opened up front is aborted first. Larger payloads
        are uploaded part by part and completed at end of input. offset is
        accepted for interface compatibility and not applied.

        Returns:
            Total number of bytes read from source
        """
        self._check_path(path)
        self._check_offset(path, offset)
        key = object_key(path)
        self._log("write_stream", path)

        session = UploadSession(key=key, upload_id=self.client.initiate_multipart_upload(key))

        chunk = _read_chunk(source, self.chunk_size)
        total_read = len(chunk)

        if len(chunk) < self.chunk_size:
            try:
                self.client.abort_multipart_upload(key, session.upload_id)
            except TransportError:
                logger.warning(
                    "Failed to abort multipart upload before single put",
                    exc_info=True,
                    extra={"path": path, "upload_id": session.upload_id, "bucket": self.bucket},
                )
            self.client.put_object(key, chunk)
            return total_read

        while chunk:
            try:
                etag = self.client.upload_part(
                    key, session.upload_id, session.next_part_number, chunk
                )
            except TransportError:
                logger.warning(
                    "Part upload failed; multipart upload left open",
                    extra={
                        "path": path,
                        "upload_id": session.upload_id,
                        "part_number": session.next_part_number,
                        "bucket": self.bucket,
                    },
                )
                raise
            session.add_part(etag)

            chunk = _read_chunk(source, self.chunk_size)
            total_read += len(chunk)

        self.client.complete_multipart_upload(key, session.upload_id, session.parts)
        logger.info(
            "Completed multipart upload",
            extra={
                "path": path,
                "upload_id": session.upload_id,
                "parts": len(session.parts),
                "size": total_read,
                "bucket": self.bucket,
            },
        )
        return total_read

    def stat(self, path: str) -> FileInfo:
        """Describe path using a prefix listing.

        One matching object is a file; more than one makes path a directory.
        """
        self._check_path(path)
        self._log("stat", path)
        try:
            objects = self.client.list_objects(object_key(path))
        except TransportError as e:
            raise PathNotFoundError(path, driver=DRIVER_NAME) from e

        if not objects:
            raise PathNotFoundError(path, driver=DRIVER_NAME)
        if len(objects) > 1:
            return FileInfo(path=path, size=None, is_dir=True)
        return FileInfo(path=path, size=objects[0].size, is_dir=False)

    def list(self, path: str) -> List[str]:
        """Return the names of the direct descendants of path."""
        self._check_path(path)
        self._log("list", path)
        prefix = object_key(path)
        try:
            objects = self.client.list_objects(prefix)
        except TransportError as e:
            raise PathNotFoundError(path, driver=DRIVER_NAME) from e

        return list_children((obj.key for obj in objects), prefix)

    def move(self, source_path: str, dest_path: str) -> None:
        """Copy source_path to dest_path, then delete the original."""
        self._check_path(source_path)
        self._check_path(dest_path)
        self._log("move", source_path, dest=dest_path)
        try:
            self.client.copy_object(object_key(source_path), object_key(dest_path))
        except ObjectNotFoundError as e:
            raise PathNotFoundError(source_path, driver=DRIVER_NAME) from e
        self.client.delete_object(object_key(source_path))

    def delete(self, path: str) -> None:
        """Delete every object stored at or under path, one by one."""
        self._check_path(path)
        objects = self.client.list_objects(object_key(path))
        self._log("delete", path, count=len(objects))
        for obj in objects:
            self.client.delete_object(obj.key)

    def url_for(self, path: str, options: Optional[Dict[str, Any]] = None) -> str:
        """BOS presigned URLs are not offered by this driver."""
        self._check_path(path)
        return super().url_for(path, options)
