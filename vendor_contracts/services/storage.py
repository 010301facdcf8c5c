# vendor_contracts/services/storage.py
import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
import structlog

from vendor_contracts.config import settings
from vendor_contracts.exceptions import UploadError
from vendor_contracts.schemas.contract import DocumentRef

logger = structlog.get_logger()


@dataclass
class DocumentUpload:
    content: bytes
    file_name: str
    content_type: str = "application/pdf"


class R2Client:
    def __init__(self):
        self._s3 = None
        self.bucket = settings.R2_BUCKET_NAME

    @property
    def s3(self):
        # Built on first use so importing the app never needs R2 credentials
        if self._s3 is None:
            self._s3 = boto3.client(
                "s3",
                endpoint_url=settings.R2_ENDPOINT_URL or None,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
                config=Config(signature_version="s3v4"),
                region_name="auto",
            )
        return self._s3

    def upload(
        self, file_bytes: bytes, key: str, content_type: str = "application/pdf"
    ) -> str:
        self.s3.put_object(
            Bucket=self.bucket, Key=key, Body=file_bytes, ContentType=content_type
        )
        logger.info("r2_uploaded", key=key, size=len(file_bytes))
        return key

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    def document_url(self, key: str) -> str:
        if settings.R2_PUBLIC_BASE_URL:
            return f"{settings.R2_PUBLIC_BASE_URL.rstrip('/')}/{quote(key)}"
        return self.get_presigned_url(key)


r2_client = R2Client()


def local_document_ref(file_name: str) -> DocumentRef:
    """Session-only reference used when the document could not be stored."""
    return DocumentRef(
        file_name=file_name,
        url=f"local://{uuid.uuid4().hex}/{quote(file_name)}",
        persisted=False,
    )


class DocumentStorage:
    """Document storage collaborator backed by R2."""

    def __init__(self, client: Optional[R2Client] = None):
        self.client = client or r2_client

    @staticmethod
    def build_key(suggested_name: str) -> str:
        return f"{int(time.time() * 1000)}-{suggested_name}"

    async def upload(
        self,
        file_bytes: bytes,
        suggested_name: str,
        content_type: str = "application/pdf",
    ) -> DocumentRef:
        key = self.build_key(suggested_name)
        try:
            await asyncio.to_thread(self.client.upload, file_bytes, key, content_type)
            url = await asyncio.to_thread(self.client.document_url, key)
        except Exception as e:
            # Client errors and misconfiguration (e.g. a malformed endpoint URL) alike
            logger.error(
                "document_upload_failed", key=key, error=str(e), error_type=type(e).__name__
            )
            raise UploadError(f"Failed to upload {suggested_name}: {e}") from e
        return DocumentRef(file_name=suggested_name, url=url)
