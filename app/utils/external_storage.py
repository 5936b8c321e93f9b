import io

from minio import Minio

from app.core.config import StorageSettings


class BlobStorage:
    """Thin wrapper over an S3-compatible bucket used for compressed images."""

    def __init__(self, client: Minio, bucket: str, public_url_template: str):
        self._client = client
        self._bucket = bucket
        self._public_url_template = public_url_template

    @classmethod
    def from_settings(cls, storage: StorageSettings) -> "BlobStorage":
        secure = storage.minio_use_ssl
        endpoint = storage.minio_endpoint

        # Remove protocol prefix if present
        if endpoint.startswith("http://"):
            endpoint = endpoint[7:]
            secure = False
        elif endpoint.startswith("https://"):
            endpoint = endpoint[8:]
            secure = True

        client = Minio(
            endpoint,
            access_key=storage.minio_access_key,
            secret_key=storage.minio_secret_key,
            secure=secure,
            region=storage.minio_region,
        )
        return cls(client, storage.minio_bucket, storage.public_url_template)

    # ------------------------------------------------------------------
    def ensure_bucket(self) -> None:
        """Create the bucket if missing. Raises on connection failure."""
        if not self._client.bucket_exists(self._bucket):
            self._client.make_bucket(self._bucket)

    def put_bytes(self, object_name: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            bucket_name=self._bucket,
            object_name=object_name,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    def public_url(self, object_name: str) -> str:
        """Direct URL of an object in a publicly readable bucket."""
        return self._public_url_template.format(bucket=self._bucket, key=object_name)
