from hookdrop.models.api import PartUrlResponse, UploadPart
from hookdrop.server.services import build_object_key, sanitize_filename


def _initiate(client, headers, **overrides):
    payload = {
        "filename": "my video (1).mp4",
        "webhookId": "webhook-1",
        "contentType": "video/mp4",
        "size": 104857600,
        "customMessage": "episode 1",
        **overrides,
    }
    return client.post("/api/files/upload/initiate", headers=headers, json=payload)


def _file_item(file_id: str, created_at: str, **fields) -> dict:
    return {
        "userId": "user-1",
        "fileId": file_id,
        "filename": f"{file_id}.bin",
        "s3Key": f"uploads/{file_id}/{file_id}.bin",
        "webhookId": "webhook-1",
        "status": "posted",
        "contentType": "application/octet-stream",
        "size": 1,
        "createdAt": created_at,
        **fields,
    }


def test_sanitize_filename():
    assert sanitize_filename("my video (1).mp4") == "my_video__1_.mp4"
    assert sanitize_filename("report-2026_v2.PDF") == "report-2026_v2.PDF"
    assert sanitize_filename("café/../x") == "caf__.._x"
    assert build_object_key("file-1", "a b.txt") == "uploads/file-1/a_b.txt"


def test_health_needs_no_token(test_app_client):
    response = test_app_client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(test_app_client):
    response = test_app_client.get("/api/files")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_requests_with_invalid_token_are_rejected(test_app_client):
    response = test_app_client.get("/api/files", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_initiate_upload_creates_record(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store):
    response = _initiate(test_app_client, auth_headers)

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["uploadId"] == "mock-upload-id"
    file_id = data["fileId"]
    assert data["s3Key"] == f"uploads/{file_id}/my_video__1_.mp4"
    mock_blob_store.create_session.assert_called_once_with(data["s3Key"], "video/mp4")

    record = files_store.get({"userId": "user-1", "fileId": file_id})
    assert record["status"] == "uploading"
    assert record["filename"] == "my video (1).mp4"
    assert record["customMessage"] == "episode 1"
    assert record["cloudFrontUrl"] == f"https://cdn.hookdrop.test/{data['s3Key']}"


def test_initiate_upload_unknown_webhook(test_app_client, auth_headers, webhook_item, mock_blob_store):
    response = _initiate(test_app_client, auth_headers, webhookId="unknown")

    assert response.status_code == 404
    mock_blob_store.create_session.assert_not_called()


def test_initiate_upload_rejects_empty_file(test_app_client, auth_headers, webhook_item):
    response = _initiate(test_app_client, auth_headers, size=0)
    assert response.status_code == 422


def test_initiate_upload_storage_failure_marks_record(
    test_app_client, auth_headers, webhook_item, files_store, mock_blob_store
):
    mock_blob_store.create_session.side_effect = RuntimeError("S3 unavailable")

    response = _initiate(test_app_client, auth_headers)

    assert response.status_code == 500
    records = files_store.query("user-1")
    assert len(records) == 1
    assert records[0]["status"] == "error"


def test_upload_url_for_small_files(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store):
    response = test_app_client.post(
        "/api/files/upload-url",
        headers=auth_headers,
        json={"filename": "notes.txt", "webhookId": "webhook-1", "contentType": "text/plain", "size": 12},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["uploadUrl"] == "https://s3.mock/presigned-put"
    mock_blob_store.presign_put.assert_called_once_with(data["s3Key"], "text/plain")
    assert files_store.get({"userId": "user-1", "fileId": data["fileId"]})["status"] == "uploading"


def test_part_url(test_app_client, auth_headers, mock_blob_store):
    mock_blob_store.authorize_part.return_value = PartUrlResponse(url="https://s3.mock/part-2", part_number=2)

    response = test_app_client.post(
        "/api/files/upload/part-url",
        headers=auth_headers,
        json={"uploadId": "mock-upload-id", "s3Key": "uploads/file-1/a.bin", "partNumber": 2},
    )

    assert response.status_code == 200, response.text
    assert response.json()["url"] == "https://s3.mock/part-2"
    assert response.json()["partNumber"] == 2
    mock_blob_store.authorize_part.assert_called_once_with("mock-upload-id", "uploads/file-1/a.bin", 2)


def test_part_url_rejects_invalid_part_number(test_app_client, auth_headers):
    response = test_app_client.post(
        "/api/files/upload/part-url",
        headers=auth_headers,
        json={"uploadId": "mock-upload-id", "s3Key": "uploads/file-1/a.bin", "partNumber": 0},
    )
    assert response.status_code == 422


def test_complete_upload(test_app_client, auth_headers, webhook_item, mock_blob_store):
    data = _initiate(test_app_client, auth_headers).json()
    parts = [{"partNumber": 2, "etag": "b"}, {"partNumber": 1, "etag": "a"}]

    response = test_app_client.post(
        "/api/files/upload/complete",
        headers=auth_headers,
        json={"uploadId": data["uploadId"], "s3Key": data["s3Key"], "fileId": data["fileId"], "parts": parts},
    )

    assert response.status_code == 200, response.text
    assert response.json() == {"success": True}
    mock_blob_store.complete_session.assert_called_once_with(
        data["uploadId"],
        data["s3Key"],
        [UploadPart(part_number=2, etag="b"), UploadPart(part_number=1, etag="a")],
    )


def test_complete_upload_of_unknown_file(test_app_client, auth_headers, mock_blob_store):
    response = test_app_client.post(
        "/api/files/upload/complete",
        headers=auth_headers,
        json={"uploadId": "u", "s3Key": "uploads/x/a.bin", "fileId": "x", "parts": [{"partNumber": 1, "etag": "a"}]},
    )

    assert response.status_code == 404
    mock_blob_store.complete_session.assert_not_called()


def test_complete_upload_storage_failure(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store):
    data = _initiate(test_app_client, auth_headers).json()
    mock_blob_store.complete_session.side_effect = RuntimeError("InvalidPart")

    response = test_app_client.post(
        "/api/files/upload/complete",
        headers=auth_headers,
        json={
            "uploadId": data["uploadId"],
            "s3Key": data["s3Key"],
            "fileId": data["fileId"],
            "parts": [{"partNumber": 1, "etag": "a"}],
        },
    )

    assert response.status_code == 502
    record = files_store.get({"userId": "user-1", "fileId": data["fileId"]})
    assert record["status"] == "error"
    assert record["errorMessage"] == "Failed to complete S3 upload"


def test_abort_upload_marks_record(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store):
    data = _initiate(test_app_client, auth_headers).json()

    response = test_app_client.post(
        "/api/files/upload/abort",
        headers=auth_headers,
        json={"uploadId": data["uploadId"], "s3Key": data["s3Key"], "fileId": data["fileId"]},
    )

    assert response.status_code == 200, response.text
    mock_blob_store.abort_session.assert_called_once_with(data["uploadId"], data["s3Key"])
    record = files_store.get({"userId": "user-1", "fileId": data["fileId"]})
    assert record["status"] == "error"
    assert record["errorMessage"] == "Upload aborted"


def test_abort_upload_without_file_id(test_app_client, auth_headers, mock_blob_store):
    response = test_app_client.post(
        "/api/files/upload/abort",
        headers=auth_headers,
        json={"uploadId": "u", "s3Key": "uploads/x/a.bin"},
    )

    assert response.status_code == 200
    mock_blob_store.abort_session.assert_called_once_with("u", "uploads/x/a.bin")


def test_list_files_newest_first(test_app_client, auth_headers, files_store):
    files_store.put(_file_item("b", "2026-01-02T00:00:00.000Z"))
    files_store.put(_file_item("a", "2026-01-03T00:00:00.000Z", webhookId="webhook-2"))
    files_store.put(_file_item("c", "2026-01-01T00:00:00.000Z"))
    files_store.put({**_file_item("d", "2026-01-04T00:00:00.000Z"), "userId": "user-2"})

    response = test_app_client.get("/api/files", headers=auth_headers)
    assert response.status_code == 200
    assert [record["fileId"] for record in response.json()] == ["a", "b", "c"]

    response = test_app_client.get("/api/files", headers=auth_headers, params={"webhookId": "webhook-1"})
    assert [record["fileId"] for record in response.json()] == ["b", "c"]


def test_get_file(test_app_client, auth_headers, files_store):
    files_store.put(_file_item("a", "2026-01-03T00:00:00.000Z"))

    response = test_app_client.get("/api/files/a", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["s3Key"] == "uploads/a/a.bin"
    assert "errorMessage" not in response.json()

    assert test_app_client.get("/api/files/missing", headers=auth_headers).status_code == 404


def test_files_of_other_users_are_hidden(test_app_client, files_store, make_auth_headers):
    files_store.put(_file_item("a", "2026-01-03T00:00:00.000Z"))
    headers = make_auth_headers("user-2")

    assert test_app_client.get("/api/files/a", headers=headers).status_code == 404
    assert test_app_client.get("/api/files", headers=headers).json() == []


def test_delete_file(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store, mock_sink):
    files_store.put(_file_item("a", "2026-01-03T00:00:00.000Z", discordMessageId="42"))

    response = test_app_client.delete("/api/files/a", headers=auth_headers)

    assert response.status_code == 204
    mock_blob_store.delete_object.assert_called_once_with("uploads/a/a.bin")
    mock_sink.delete_message.assert_called_once_with(webhook_item["webhookUrl"], "42")
    assert files_store.get({"userId": "user-1", "fileId": "a"}) is None


def test_delete_file_failure(test_app_client, auth_headers, webhook_item, files_store, mock_blob_store):
    files_store.put(_file_item("a", "2026-01-03T00:00:00.000Z"))
    mock_blob_store.delete_object.side_effect = RuntimeError("AccessDenied")

    response = test_app_client.delete("/api/files/a", headers=auth_headers)

    assert response.status_code == 500
    assert files_store.get({"userId": "user-1", "fileId": "a"}) is not None


def test_delete_missing_file(test_app_client, auth_headers):
    assert test_app_client.delete("/api/files/missing", headers=auth_headers).status_code == 404
