"""
Object storage — S3-compatible bucket via boto3.

The application talks to a single ``ObjectStorage`` instance registered in
``app.extensions["object_storage"]`` by ``init_storage``. Tests replace it
with an in-memory double that has the same two-method surface:

    upload(file_bytes, folder, filename, content_type) -> {"url", "public_id"}
    delete(public_id) -> None

Failures surface as ``UploadError`` so the request boundary reports 502.
"""

import logging
import os
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from marketplace.core.exceptions import UploadError

logger = logging.getLogger(__name__)

EXTENSION_NAME = "object_storage"


class ObjectStorage:
    """Thin wrapper over a boto3 S3 client bound to one bucket."""

    def __init__(self, bucket, region=None, endpoint_url=None, public_base_url=None,
                 access_key_id=None, secret_access_key=None):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self._client_kwargs = {
            "region_name": region,
            "endpoint_url": endpoint_url,
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
        }
        self._client = None

    @property
    def client(self):
        # Created lazily so app start-up never needs network or credentials
        if self._client is None:
            kwargs = {k: v for k, v in self._client_kwargs.items() if v}
            self._client = boto3.client("s3", **kwargs)
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, file_bytes: bytes, folder: str, filename: str = "",
               content_type: str = "application/octet-stream") -> dict:
        """Store ``file_bytes`` under ``folder/<uuid><ext>``.

        Returns:
            {"url": public URL, "public_id": object key}

        Raises:
            UploadError: If the bucket rejects the write or is unreachable.
        """
        ext = os.path.splitext(filename or "")[1].lower()
        key = f"{folder.strip('/')}/{uuid.uuid4().hex}{ext}"
        try:
            self.client.put_object(
                Bucket=self.bucket, Key=key, Body=file_bytes, ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Upload to bucket=%s key=%s failed: %s", self.bucket, key, exc)
            raise UploadError("File upload failed") from exc
        logger.info("Uploaded object key=%s size=%d", key, len(file_bytes))
        return {"url": self.public_url(key), "public_id": key}

    def delete(self, public_id: str) -> None:
        """Remove an object by key.

        Raises:
            UploadError: If the delete call fails.
        """
        try:
            self.client.delete_object(Bucket=self.bucket, Key=public_id)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Delete of key=%s failed: %s", public_id, exc)
            raise UploadError("File delete failed") from exc
        logger.info("Deleted object key=%s", public_id)


def init_storage(app, storage=None):
    """Register the object storage client on the app."""
    if storage is None:
        storage = ObjectStorage(
            bucket=app.config["STORAGE_BUCKET"],
            region=app.config.get("STORAGE_REGION"),
            endpoint_url=app.config.get("STORAGE_ENDPOINT_URL"),
            public_base_url=app.config.get("STORAGE_PUBLIC_BASE_URL"),
            access_key_id=app.config.get("STORAGE_ACCESS_KEY_ID"),
            secret_access_key=app.config.get("STORAGE_SECRET_ACCESS_KEY"),
        )
    app.extensions[EXTENSION_NAME] = storage
    return storage


def get_storage():
    return current_app.extensions[EXTENSION_NAME]


def discard_uploads(public_ids) -> None:
    """Compensating delete for uploads whose database write failed.

    Errors are logged and swallowed: the original failure is what the
    caller must see.
    """
    storage = get_storage()
    for public_id in public_ids:
        if not public_id:
            continue
        try:
            storage.delete(public_id)
        except Exception:
            logger.exception("Failed to clean up uploaded object key=%s", public_id)


IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})


def read_upload(file_storage, allowed_mime_types, field_name="file"):
    """Read a werkzeug ``FileStorage`` into ``(bytes, filename, mime_type)``.

    Raises:
        UploadError (400): Empty file or disallowed content type.
    """
    if file_storage is None or not file_storage.filename:
        raise UploadError(f"{field_name} is required", status_code=400,
                          details={field_name: "required"})
    mime_type = (file_storage.mimetype or "").lower()
    if mime_type not in allowed_mime_types:
        raise UploadError(
            f"Unsupported file type: {mime_type or 'unknown'}",
            status_code=400,
            details={field_name: f"allowed: {', '.join(sorted(allowed_mime_types))}"},
        )
    data = file_storage.read()
    if not data:
        raise UploadError(f"{field_name} is empty", status_code=400,
                          details={field_name: "empty"})
    return data, file_storage.filename, mime_type
