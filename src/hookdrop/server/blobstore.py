import logging
from datetime import UTC, datetime, timedelta

from ..constants import PART_URL_EXPIRY, SINGLE_PUT_URL_EXPIRY
from ..models.api import PartUrlResponse, UploadPart
from ..transfer import S3Client

log = logging.getLogger(__name__)


class S3BlobStore:
    """Multipart upload sessions, presigned URLs and object deletion on one S3 bucket."""

    def __init__(self, s3_client: S3Client, bucket_name: str):
        self._s3_client = s3_client
        self._bucket_name = bucket_name

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def create_session(self, key: str, content_type: str) -> str:
        log.info(f"Creating multipart upload for object key: {key}")
        response = self._s3_client.create_multipart_upload(Bucket=self._bucket_name, Key=key, ContentType=content_type)
        upload_id = response.get("UploadId")
        if not upload_id:
            raise RuntimeError(f"S3 returned no UploadId for {key}")
        return upload_id

    def authorize_part(
        self, upload_id: str, key: str, part_number: int, valid_for: int = PART_URL_EXPIRY
    ) -> PartUrlResponse:
        url = self._s3_client.generate_presigned_url(
            "upload_part",
            Params={"Bucket": self._bucket_name, "Key": key, "UploadId": upload_id, "PartNumber": part_number},
            ExpiresIn=valid_for,
        )
        return PartUrlResponse(
            url=url, part_number=part_number, expires_at=datetime.now(UTC) + timedelta(seconds=valid_for)
        )

    def complete_session(self, upload_id: str, key: str, parts: list[UploadPart]):
        # S3 requires ascending part numbers
        sorted_parts = sorted(parts, key=lambda p: p.part_number)
        log.info(f"Completing multipart upload for object: {key} ({len(sorted_parts)} parts)")
        self._s3_client.complete_multipart_upload(
            Bucket=self._bucket_name,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={"Parts": [{"ETag": part.etag, "PartNumber": part.part_number} for part in sorted_parts]},
        )

    def abort_session(self, upload_id: str, key: str):
        log.info(f"Aborting upload for key: {key} (UploadId: {upload_id})")
        try:
            self._s3_client.abort_multipart_upload(Bucket=self._bucket_name, Key=key, UploadId=upload_id)
        except self._s3_client.exceptions.NoSuchUpload:
            log.warning(f"Upload {upload_id} for {key} not found.")

    def presign_put(self, key: str, content_type: str, valid_for: int = SINGLE_PUT_URL_EXPIRY) -> str:
        return self._s3_client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self._bucket_name, "Key": key, "ContentType": content_type},
            ExpiresIn=valid_for,
        )

    def delete_object(self, key: str):
        log.info(f"Deleting object: {key}")
        self._s3_client.delete_object(Bucket=self._bucket_name, Key=key)
