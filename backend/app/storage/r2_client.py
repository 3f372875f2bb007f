"""
Cloudflare R2 client (S3-compatible, via boto3).

R2 is the app's own image host: uploaded originals, re-hosted AI results and
style thumbnails are written here and served from R2_PUBLIC_URL, so no
stored record depends on a third-party CDN link.
"""
import logging
from typing import Optional
import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError

from app.config import settings

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ("r2_endpoint", "r2_access_key", "r2_secret_key", "r2_public_url")


class R2Client:
    """
    Image bucket on Cloudflare R2.

    Uploads bytes, maps object keys to public URLs and back, and deletes
    single objects or whole key prefixes.
    """

    def __init__(self):
        """
        Build the boto3 client from settings.

        When any R2 setting is missing the client stays unconfigured: uploads
        raise RuntimeError and deletes are no-ops.
        """
        self._client = None
        self._configured = False

        missing = [name.upper() for name in REQUIRED_SETTINGS if not getattr(settings, name)]
        if missing:
            logger.warning(f"R2 storage not configured. Missing: {', '.join(missing)}")
            return

        try:
            self._client = boto3.client(
                's3',
                endpoint_url=settings.r2_endpoint,
                aws_access_key_id=settings.r2_access_key,
                aws_secret_access_key=settings.r2_secret_key,
                region_name=settings.r2_region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path'}  # R2 uses path-style
                )
            )
            self._configured = True
            logger.info(f"R2 image bucket ready: {settings.r2_bucket}")

        except NoCredentialsError:
            logger.error("R2 credentials not found or invalid")
        except Exception as e:
            logger.error(f"Failed to initialize R2 client: {e}")

    @property
    def is_configured(self) -> bool:
        return self._configured and self._client is not None

    @property
    def bucket(self) -> str:
        return settings.r2_bucket

    @property
    def public_base(self) -> str:
        return (settings.r2_public_url or "").rstrip("/")

    def public_url(self, object_key: str) -> str:
        """Public URL serving `object_key`."""
        return f"{self.public_base}/{object_key.lstrip('/')}"

    def key_from_url(self, url: str) -> Optional[str]:
        """
        Map one of our public URLs back to its object key.

        Returns:
            Object key, or None if the URL is not hosted by us
        """
        if not self.public_base or not url.startswith(self.public_base + "/"):
            return None
        key = url[len(self.public_base) + 1:].split("?", 1)[0]
        return key or None

    def upload_bytes(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, str]] = None
    ) -> str:
        """
        Upload raw bytes.

        Args:
            object_key: The S3 object key (path in bucket)
            data: File contents
            content_type: MIME type (e.g., image/png)
            metadata: Optional object metadata (x-amz-meta-*)

        Returns:
            Public URL of the uploaded object

        Raises:
            RuntimeError: If R2 is not configured
            ClientError: If the upload is rejected
        """
        if not self.is_configured:
            raise RuntimeError("R2 storage not configured")

        self._client.put_object(
            Bucket=self.bucket,
            Key=object_key,
            Body=data,
            ContentType=content_type,
            CacheControl="public, max-age=31536000",
            Metadata=metadata or {},
        )
        logger.debug(f"Uploaded {len(data)} bytes to {object_key}")
        return self.public_url(object_key)

    def delete_object(self, object_key: str) -> bool:
        """
        Delete an object from the bucket.

        Args:
            object_key: The S3 object key to delete

        Returns:
            True if deletion was successful, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Cannot delete object {object_key}: R2 not configured")
            return False

        try:
            self._client.delete_object(Bucket=self.bucket, Key=object_key)
            logger.debug(f"Deleted object {object_key} from R2")
            return True
        except ClientError as e:
            # If object doesn't exist, consider it a success (idempotent)
            if e.response['Error']['Code'] in ('404', 'NoSuchKey'):
                logger.debug(f"Object {object_key} not found in R2 (already deleted)")
                return True
            logger.error(f"Failed to delete object {object_key} from R2: {e}")
            return False

    def delete_prefix(self, prefix: str) -> tuple[int, int]:
        """
        Delete every object under a key prefix (e.g. all images of a user).

        S3 batch delete accepts at most 1000 keys per call; listing pages
        are already capped at that size.

        Returns:
            Tuple of (successful_count, failed_count)
        """
        if not self.is_configured:
            logger.warning(f"Cannot delete prefix {prefix}: R2 not configured")
            return (0, 0)

        successful = 0
        failed = 0
        paginator = self._client.get_paginator('list_objects_v2')

        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys = [obj['Key'] for obj in page.get('Contents', [])]
            if not keys:
                continue
            try:
                response = self._client.delete_objects(
                    Bucket=self.bucket,
                    Delete={
                        'Objects': [{'Key': key} for key in keys],
                        'Quiet': True  # Only return errors, not successes
                    }
                )
                errors = response.get('Errors', [])
                for error in errors[:5]:
                    logger.warning(
                        f"Failed to delete {error.get('Key')}: "
                        f"{error.get('Code')} - {error.get('Message')}"
                    )
                failed += len(errors)
                successful += len(keys) - len(errors)
            except ClientError as e:
                logger.error(f"Batch delete under {prefix} failed: {e}")
                failed += len(keys)

        logger.info(f"R2 prefix delete {prefix}: {successful} deleted, {failed} failed")
        return (successful, failed)


# Singleton instance
_r2_client: Optional[R2Client] = None


def get_r2_client() -> R2Client:
    """
    Get the singleton R2 client instance.

    Returns:
        R2Client instance (may or may not be configured)
    """
    global _r2_client
    if _r2_client is None:
        _r2_client = R2Client()
    return _r2_client
