"""S3 storage for uploaded photos.

- places/{YYYYMMDD}/{uuid}.{ext}
- avatars/{YYYYMMDD}/{uuid}.{ext}

The object key doubles as the ``storage_id`` persisted next to each photo URL.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError

from placer.utils.storage_manager import StoredPhoto, extension_for


class S3PhotoStorage:
    """S3에 업로드 사진 저장"""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region: str = "ap-northeast-2",
        public_url: Optional[str] = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.region = region
        self.public_url = (public_url or f"https://{bucket_name}.s3.{region}.amazonaws.com").rstrip("/")
        self.s3_client = boto3.client(
            "s3",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region,
        )

    def save(self, folder: str, data: bytes, content_type: str) -> StoredPhoto:
        date_str = datetime.now().strftime("%Y%m%d")
        key = f"{folder}/{date_str}/{uuid4().hex}{extension_for(content_type)}"
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return StoredPhoto(url=f"{self.public_url}/{key}", storage_id=key)

    def delete(self, storage_id: str) -> bool:
        """Delete an object; False when S3 rejects the request."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_id)
            return True
        except ClientError:
            return False
