import os
from datetime import UTC, datetime, timedelta

import pytest
from moto import mock_aws

from hookdrop.models.api import UploadPart
from hookdrop.models.config import S3Options
from hookdrop.server.blobstore import S3BlobStore
from hookdrop.transfer import init_s3_client

BUCKET = "hookdrop-uploads"


@pytest.fixture
def s3_client():
    """S3 client against a mocked bucket."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    with mock_aws():
        client = init_s3_client(S3Options(bucket=BUCKET, region_name="us-east-1"))
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture
def blob_store(s3_client):
    return S3BlobStore(s3_client, BUCKET)


def test_multipart_session_roundtrip(blob_store, s3_client):
    key = "uploads/file-1/data.bin"
    upload_id = blob_store.create_session(key, "application/octet-stream")

    # S3 requires at least 5 MiB for every part but the last
    first = b"a" * (5 * 1024 * 1024)
    second = b"b" * 1024
    etags = {}
    for number, body in ((1, first), (2, second)):
        response = s3_client.upload_part(Bucket=BUCKET, Key=key, UploadId=upload_id, PartNumber=number, Body=body)
        etags[number] = response["ETag"].replace('"', "")

    # parts are sorted before completion
    blob_store.complete_session(
        upload_id, key, [UploadPart(part_number=2, etag=etags[2]), UploadPart(part_number=1, etag=etags[1])]
    )

    obj = s3_client.get_object(Bucket=BUCKET, Key=key)
    assert obj["ContentLength"] == len(first) + len(second)
    assert obj["ContentType"] == "application/octet-stream"


def test_abort_session_releases_upload(blob_store, s3_client):
    key = "uploads/file-1/data.bin"
    upload_id = blob_store.create_session(key, "video/mp4")

    blob_store.abort_session(upload_id, key)

    uploads = s3_client.list_multipart_uploads(Bucket=BUCKET).get("Uploads", [])
    assert upload_id not in [upload["UploadId"] for upload in uploads]


def test_abort_unknown_session_is_ignored(blob_store):
    blob_store.abort_session("no-such-upload", "uploads/file-1/data.bin")


def test_authorize_part_presigns_upload_part(blob_store):
    key = "uploads/file-1/data.bin"
    upload_id = blob_store.create_session(key, "video/mp4")
    before = datetime.now(UTC)

    part_url = blob_store.authorize_part(upload_id, key, 3)

    assert part_url.part_number == 3
    assert "partNumber=3" in part_url.url
    assert f"uploadId={upload_id}" in part_url.url
    assert "X-Amz-Expires=3600" in part_url.url
    assert part_url.expires_at >= before + timedelta(seconds=3600)


def test_presign_put(blob_store):
    url = blob_store.presign_put("uploads/file-1/small.txt", "text/plain")

    assert "uploads/file-1/small.txt" in url
    assert "X-Amz-Expires=900" in url


def test_delete_object(blob_store, s3_client):
    s3_client.put_object(Bucket=BUCKET, Key="uploads/file-1/small.txt", Body=b"hello")

    blob_store.delete_object("uploads/file-1/small.txt")

    assert s3_client.list_objects_v2(Bucket=BUCKET).get("KeyCount") == 0
