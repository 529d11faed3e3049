"""Bucket client wrappers for the object-storage SDKs.

Each wrapper owns one bucket handle (credentials, endpoint, bucket name)
and exposes the primitive calls the driver composes: get/put/list/copy/
delete plus the multipart upload lifecycle. Wrappers translate SDK
failures into ObjectNotFoundError or TransportError and do nothing else.
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, List, Optional, Sequence

from bos_driver.exceptions import ObjectNotFoundError, TransportError

logger = logging.getLogger(__name__)

# Largest page either service returns from a single list call
LIST_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ObjectSummary:
    """One entry from a prefix listing."""

    key: str
    size: int


@dataclass(frozen=True)
class CompletedPart:
    """A part accepted by the service during a multipart upload."""

    part_number: int
    etag: str


class BucketClient(ABC):
    """Abstract pass-through to a single object-storage bucket."""

    bucket: str

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """Return the full content of key.

        Raises:
            ObjectNotFoundError: If key does not exist
            TransportError: For any other service failure
        """
        pass

    @abstractmethod
    def open_object(self, key: str) -> BinaryIO:
        """Return an unread stream over the content of key. Caller closes it."""
        pass

    @abstractmethod
    def put_object(self, key: str, data: bytes) -> None:
        """Store data at key in a single request."""
        pass

    @abstractmethod
    def list_objects(self, prefix: str) -> List[ObjectSummary]:
        """Return every object whose key starts with prefix, in key order."""
        pass

    @abstractmethod
    def copy_object(self, source_key: str, dest_key: str) -> None:
        """Server-side copy within the bucket."""
        pass

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """Delete a single object."""
        pass

    @abstractmethod
    def initiate_multipart_upload(self, key: str) -> str:
        """Start a multipart upload and return its upload id."""
        pass

    @abstractmethod
    def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        """Upload one part and return its ETag."""
        pass

    @abstractmethod
    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        """Assemble the uploaded parts into the final object."""
        pass

    @abstractmethod
    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """Discard an in-progress multipart upload."""
        pass


class BosBucketClient(BucketClient):
    """Baidu Object Storage bucket client.

    Uses the native bce-python-sdk (``baidubce``). When no endpoint is
    given the SDK's default BOS endpoint is used.
    """

    def __init__(
        self,
        bucket: str,
        access_key: str,
        secret_key: str,
        endpoint: Optional[str] = None,
    ):
        """Initialize BOS client.

        Args:
            bucket: BOS bucket name
            access_key: BCE access key id
            secret_key: BCE secret access key
            endpoint: Optional endpoint host (e.g. 'gz.bcebos.com')
        """
        from baidubce.auth.bce_credentials import BceCredentials
        from baidubce.bce_client_configuration import BceClientConfiguration
        from baidubce.services.bos.bos_client import BosClient

        self.bucket = bucket
        self.endpoint = endpoint or None

        config = BceClientConfiguration(credentials=BceCredentials(access_key, secret_key))
        if self.endpoint:
            config.endpoint = self.endpoint

        self.bos_client = BosClient(config)
        logger.info(
            "Connected to BOS",
            extra={"bucket": bucket, "endpoint": self.endpoint or "default"},
        )

    def _translate(self, exc: Exception, action: str, key: str) -> TransportError:
        """Map a baidubce exception onto the driver's error types."""
        # The HTTP layer wraps server errors in BceHttpClientError.last_error
        server_error = getattr(exc, "last_error", None) or exc
        status = getattr(server_error, "status_code", None)
        code = getattr(server_error, "code", None)
        if status == 404 or code in ("NoSuchKey", "NoSuchUpload"):
            return ObjectNotFoundError(key, cause=exc, bucket=self.bucket)
        return TransportError(
            f"BOS {action} failed for {key}: {exc}", cause=exc, bucket=self.bucket, key=key
        )

    def get_object(self, key: str) -> bytes:
        from baidubce.exception import BceError

        try:
            return bytes(self.bos_client.get_object_as_string(self.bucket, key))
        except BceError as e:
            raise self._translate(e, "get_object", key) from e

    def open_object(self, key: str) -> BinaryIO:
        from baidubce.exception import BceError

        try:
            response = self.bos_client.get_object(self.bucket, key)
        except BceError as e:
            raise self._translate(e, "get_object", key) from e
        stream: BinaryIO = response.data
        return stream

    def put_object(self, key: str, data: bytes) -> None:
        from baidubce.exception import BceError

        try:
            self.bos_client.put_object_from_string(self.bucket, key, data)
        except BceError as e:
            raise self._translate(e, "put_object", key) from e

    def list_objects(self, prefix: str) -> List[ObjectSummary]:
        from baidubce.exception import BceError

        objects: List[ObjectSummary] = []
        marker: Optional[str] = None

        while True:
            try:
                response = self.bos_client.list_objects(
                    self.bucket, max_keys=LIST_PAGE_SIZE, prefix=prefix, marker=marker
                )
            except BceError as e:
                raise self._translate(e, "list_objects", prefix) from e

            contents = getattr(response, "contents", None) or []
            for item in contents:
                objects.append(ObjectSummary(key=item.key, size=int(item.size)))

            if not getattr(response, "is_truncated", False) or not contents:
                break
            # next_marker is only returned for delimited listings
            marker = getattr(response, "next_marker", None) or contents[-1].key

        return objects

    def copy_object(self, source_key: str, dest_key: str) -> None:
        from baidubce.exception import BceError

        try:
            self.bos_client.copy_object(self.bucket, source_key, self.bucket, dest_key)
        except BceError as e:
            raise self._translate(e, "copy_object", source_key) from e

    def delete_object(self, key: str) -> None:
        from baidubce.exception import BceError

        try:
            self.bos_client.delete_object(self.bucket, key)
        except BceError as e:
            raise self._translate(e, "delete_object", key) from e

    def initiate_multipart_upload(self, key: str) -> str:
        from baidubce.exception import BceError

        try:
            response = self.bos_client.initiate_multipart_upload(self.bucket, key)
        except BceError as e:
            raise self._translate(e, "initiate_multipart_upload", key) from e
        return str(response.upload_id)

    def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        from baidubce.exception import BceError

        try:
            response = self.bos_client.upload_part(
                self.bucket, key, upload_id, part_number, len(data), io.BytesIO(data)
            )
        except BceError as e:
            raise self._translate(e, "upload_part", key) from e
        return str(response.metadata.etag)

    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        from baidubce.exception import BceError

        part_list = [
            {"partNumber": part.part_number, "eTag": part.etag}
            for part in sorted(parts, key=lambda p: p.part_number)
        ]
        try:
            self.bos_client.complete_multipart_upload(self.bucket, key, upload_id, part_list)
        except BceError as e:
            raise self._translate(e, "complete_multipart_upload", key) from e

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        from baidubce.exception import BceError

        try:
            self.bos_client.abort_multipart_upload(self.bucket, key, upload_id)
        except BceError as e:
            raise self._translate(e, "abort_multipart_upload", key) from e


class S3BucketClient(BucketClient):
    """S3-compatible bucket client (BOS S3 API, MinIO, Ceph, etc.).

    Uses boto3 with a custom endpoint_url. BOS serves its S3 API at
    ``https://s3.<region>.bcebos.com``.
    """

    def __init__(
        self,
        bucket: str,
        access_key: str,
        secret_key: str,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
    ):
        """Initialize S3-compatible client.

        Args:
            bucket: Bucket name
            access_key: Access key ID
            secret_key: Secret access key
            endpoint: Endpoint URL; derived from region when omitted
            region: Region name (defaults to 'bj')
        """
        import boto3

        self.bucket = bucket
        self.region = region or "bj"
        self.endpoint = endpoint or None

        client_kwargs: dict = {
            "aws_access_key_id": access_key,
            "aws_secret_access_key": secret_key,
            "region_name": self.region,
        }
        if self.endpoint:
            client_kwargs["endpoint_url"] = self.endpoint

        self.s3_client = boto3.client("s3", **client_kwargs)
        logger.info(
            "Connected to S3-compatible endpoint",
            extra={"bucket": bucket, "endpoint": self.endpoint or "default"},
        )

    @staticmethod
    def endpoint_for_region(region: str) -> str:
        """Return the BOS S3-compatible endpoint URL for a region."""
        return f"https://s3.{region}.bcebos.com"

    def _translate(self, exc: Exception, action: str, key: str) -> TransportError:
        """Map a botocore exception onto the driver's error types."""
        response: Any = getattr(exc, "response", None) or {}
        code = response.get("Error", {}).get("Code")
        if code in ("NoSuchKey", "NoSuchUpload", "404", "NotFound"):
            return ObjectNotFoundError(key, cause=exc, bucket=self.bucket)
        return TransportError(
            f"S3 {action} failed for {key}: {exc}", cause=exc, bucket=self.bucket, key=key
        )

    def get_object(self, key: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            data: bytes = response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "get_object", key) from e
        return data

    def open_object(self, key: str) -> BinaryIO:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "get_object", key) from e
        stream: BinaryIO = response["Body"]
        return stream

    def put_object(self, key: str, data: bytes) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.s3_client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "put_object", key) from e

    def list_objects(self, prefix: str) -> List[ObjectSummary]:
        from botocore.exceptions import BotoCoreError, ClientError

        objects: List[ObjectSummary] = []
        paginator = self.s3_client.get_paginator("list_objects_v2")

        try:
            for page in paginator.paginate(
                Bucket=self.bucket,
                Prefix=prefix,
                PaginationConfig={"PageSize": LIST_PAGE_SIZE},
            ):
                for obj in page.get("Contents", []):
                    objects.append(ObjectSummary(key=obj["Key"], size=int(obj["Size"])))
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "list_objects", prefix) from e

        return objects

    def copy_object(self, source_key: str, dest_key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.s3_client.copy_object(
                Bucket=self.bucket,
                Key=dest_key,
                CopySource={"Bucket": self.bucket, "Key": source_key},
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "copy_object", source_key) from e

    def delete_object(self, key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "delete_object", key) from e

    def initiate_multipart_upload(self, key: str) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self.s3_client.create_multipart_upload(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "initiate_multipart_upload", key) from e
        return str(response["UploadId"])

    def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self.s3_client.upload_part(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "upload_part", key) from e
        return str(response["ETag"])

    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        multipart_payload = {
            "Parts": [
                {"ETag": part.etag, "PartNumber": part.part_number}
                for part in sorted(parts, key=lambda p: p.part_number)
            ]
        }
        try:
            self.s3_client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload=multipart_payload,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "complete_multipart_upload", key) from e

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.s3_client.abort_multipart_upload(Bucket=self.bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "abort_multipart_upload", key) from e
