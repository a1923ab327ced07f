"""
Storage Service

S3-compatible object storage client for MinIO.
"""

import io
import logging
from typing import BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from photo_service.config import get_settings
from photo_service.exceptions import StorageError

logger = logging.getLogger(__name__)
settings = get_settings()


class StorageService:
    """
    S3-compatible storage service.

    Holds photo originals, blurred variants and voice prompt audio in a
    single MinIO bucket. Failures surface as StorageError so callers never
    see botocore types.
    """

    def __init__(self):
        """Initialize S3 client."""
        endpoint_url = f"{'https' if settings.minio_secure else 'http'}://{settings.minio_endpoint}"

        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            config=Config(signature_version="s3v4"),
            region_name="us-east-1",  # Required for MinIO
        )
        self.bucket = settings.minio_bucket
        self._ensure_bucket()

    def _ensure_bucket(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"Bucket '{self.bucket}' exists")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in ("404", "NoSuchBucket"):
                logger.info(f"Creating bucket '{self.bucket}'")
                self.client.create_bucket(Bucket=self.bucket)
            else:
                logger.error(f"Error checking bucket: {e}")
                raise

    def upload_bytes(
        self,
        data: bytes,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes to S3.

        Args:
            data: Bytes to upload
            key: S3 object key (path)
            content_type: MIME type

        Returns:
            The S3 key of the uploaded object
        """
        return self._upload_fileobj(io.BytesIO(data), key, content_type)

    def _upload_fileobj(self, file: BinaryIO, key: str, content_type: str) -> str:
        try:
            self.client.upload_fileobj(
                file,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
            logger.info(f"Uploaded s3://{self.bucket}/{key}")
            return key
        except ClientError as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise StorageError(f"upload failed for {key}") from e

    def download_file(self, key: str) -> bytes:
        """
        Download an object.

        Raises:
            StorageError: if the object is missing or unreadable
        """
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            logger.error(f"Failed to download {key}: {e}")
            raise StorageError(f"download failed for {key}") from e

    def delete_file(self, key: str) -> bool:
        """
        Delete an object.

        Returns:
            True if deleted successfully
        """
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"Deleted s3://{self.bucket}/{key}")
            return True
        except ClientError as e:
            logger.error(f"Failed to delete {key}: {e}")
            return False

    def file_exists(self, key: str) -> bool:
        """Check if an object exists."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False

    def get_file_size(self, key: str) -> int | None:
        """Object size in bytes, or None when it does not exist."""
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
            return response["ContentLength"]
        except ClientError:
            return None

    def list_files(self, prefix: str = "") -> list[dict]:
        """
        List objects with a given prefix.

        Raises:
            StorageError: if the bucket cannot be listed
        """
        try:
            response = self.client.list_objects_v2(
                Bucket=self.bucket,
                Prefix=prefix,
            )
            return response.get("Contents", [])
        except ClientError as e:
            logger.error(f"Failed to list {prefix}: {e}")
            raise StorageError(f"list failed for {prefix}") from e


# Singleton instance
_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Get or create storage service singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
