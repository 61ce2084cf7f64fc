import boto3
from botocore.exceptions import ClientError
from pathlib import Path

from render_worker.core.config import settings
from render_worker.core.logging import get_logger

logger = get_logger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class ObjectNotFoundError(Exception):
    """Object không tồn tại trong bucket."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object not found: s3://{bucket}/{key}")
        self.bucket = bucket
        self.key = key


def s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint or None,
        aws_access_key_id=settings.s3_access_key or None,
        aws_secret_access_key=settings.s3_secret_key or None,
    )


class ObjectStorage:
    """get/put object theo key. Không retry: lỗi mạng/S3 đẩy thẳng lên caller."""

    def __init__(self, bucket: str | None = None, client=None):
        self.bucket = bucket or settings.s3_bucket
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = s3_client()
        return self._client

    def ensure_bucket(self) -> None:
        logger.info(f"[STORAGE] Ensuring bucket exists: {self.bucket}")
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] ✅ Bucket already exists: {self.bucket}")
        except ClientError:
            self.client.create_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] ✅ Bucket created: {self.bucket}")

    def get_bytes(self, key: str, bucket: str | None = None) -> bytes:
        bucket = bucket or self.bucket
        logger.debug(f"[STORAGE] get_bytes: bucket={bucket}, key={key}")
        try:
            obj = self.client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(bucket, key) from e
            raise
        return obj["Body"].read()

    def download_to_file(self, key: str, path: Path, bucket: str | None = None) -> int:
        data = self.get_bytes(key, bucket=bucket)
        Path(path).write_bytes(data)
        return len(data)

    def put_bytes(
        self,
        key: str,
        data: bytes,
        content_type: str,
        bucket: str | None = None,
        cache_control: str | None = None,
    ) -> None:
        bucket = bucket or self.bucket
        logger.debug(f"[STORAGE] put_bytes: bucket={bucket}, key={key}, size={len(data)}")
        extra = {"CacheControl": cache_control} if cache_control else {}
        self.client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type, **extra)

    def put_file(self, key: str, path: Path, content_type: str, **kwargs) -> int:
        data = Path(path).read_bytes()
        self.put_bytes(key, data, content_type, **kwargs)
        return len(data)
