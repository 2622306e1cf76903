"""Pydantic models for the hookdrop HTTP API."""

from datetime import datetime

from pydantic import Field, HttpUrl

from ..constants import MULTIPART_MAX_PARTS
from .common import CamelModel


class CreateWebhookRequest(CamelModel):
    """Registers a Discord-style webhook as an upload destination."""

    name: str = Field(..., min_length=1)
    webhook_url: HttpUrl
    server_name: str | None = None
    channel_name: str | None = None


class UploadUrlRequest(CamelModel):
    """The request for a single presigned PUT URL (small files)."""

    filename: str = Field(..., min_length=1)
    webhook_id: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)
    custom_message: str | None = None


class UploadUrlResponse(CamelModel):
    upload_url: str = Field(..., description="Presigned URL accepting a single PUT of the whole file.")
    file_id: str
    s3_key: str


class InitiateUploadRequest(CamelModel):
    """The request to start a multipart upload."""

    filename: str = Field(..., min_length=1)
    webhook_id: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    size: int = Field(..., gt=0)
    custom_message: str | None = None


class InitiateUploadResponse(CamelModel):
    upload_id: str = Field(..., description="The ID for the multipart upload on S3.")
    file_id: str
    s3_key: str


class PartUrlRequest(CamelModel):
    upload_id: str = Field(..., min_length=1)
    s3_key: str = Field(..., min_length=1)
    part_number: int = Field(..., ge=1, le=MULTIPART_MAX_PARTS)


class PartUrlResponse(CamelModel):
    """A presigned URL for a single part of a multipart upload."""

    url: str
    part_number: int
    expires_at: datetime | None = None


class UploadPart(CamelModel):
    """Information about a successfully uploaded part."""

    part_number: int = Field(..., ge=1, le=MULTIPART_MAX_PARTS)
    etag: str = Field(..., min_length=1, description="The ETag returned by S3 for the uploaded part, unquoted.")


class CompleteUploadRequest(CamelModel):
    """The request to finalize a multipart upload."""

    upload_id: str = Field(..., min_length=1)
    s3_key: str = Field(..., min_length=1)
    file_id: str = Field(..., min_length=1)
    parts: list[UploadPart] = Field(..., min_length=1)


class AbortUploadRequest(CamelModel):
    upload_id: str = Field(..., min_length=1)
    s3_key: str = Field(..., min_length=1)
    file_id: str | None = None


class SuccessResponse(CamelModel):
    success: bool = True


class HealthCheckResponse(CamelModel):
    status: str = "healthy"
