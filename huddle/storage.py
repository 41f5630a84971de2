"""
Object storage for profile photos and team logos: S3-compatible (Tencent COS)
and an in-memory double for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config


class StorageClient(Protocol):
    """Operations the API needs from object storage."""

    def presign_put(
        self, path: str, content_type: str, expires_in: int = 900
    ) -> str:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    signed: dict = field(default_factory=dict)

    def presign_put(
        self, path: str, content_type: str, expires_in: int = 900
    ) -> str:
        self.signed[path] = content_type
        return f"{self.base_url}/{path}?op=put&expires={expires_in}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class CosStorageClient:
    """
    S3-compatible storage client for Tencent COS.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def presign_put(
        self, path: str, content_type: str, expires_in: int = 900
    ) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": path, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        host = self.endpoint.split("://", 1)[-1].rstrip("/")
        return f"https://{self.bucket}.{host}/{path}"
