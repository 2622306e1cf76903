from unittest.mock import MagicMock

import jwt
import pytest
import yaml
from fastapi.testclient import TestClient

from hookdrop.models.config import ApiConfig, AuthConfig, MetadataOptions, S3Options
from hookdrop.models.upload import UploadSession
from hookdrop.notifier.discord import DiscordWebhookSink
from hookdrop.server.blobstore import S3BlobStore
from hookdrop.server.config import get_api_config
from hookdrop.server.dependencies import (
    get_blob_store,
    get_files_store,
    get_notification_sink,
    get_webhooks_store,
)
from hookdrop.server.main import app
from hookdrop.stores import SqlMetadataStore, init_sql_engine

TEST_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
TEST_CDN_DOMAIN = "cdn.hookdrop.test"


def make_token(subject: str) -> str:
    return jwt.encode({"sub": subject}, TEST_SECRET_KEY, algorithm="HS256")


@pytest.fixture
def api_config() -> ApiConfig:
    return ApiConfig(
        s3=S3Options(bucket="hookdrop-uploads"),
        metadata=MetadataOptions(backend="sql", database_url="sqlite://"),
        auth=AuthConfig(secret_key=TEST_SECRET_KEY, algorithm="HS256"),
        cdn_domain=TEST_CDN_DOMAIN,
    )


@pytest.fixture
def metadata_stores() -> tuple[SqlMetadataStore, SqlMetadataStore]:
    engine = init_sql_engine("sqlite://")
    files = SqlMetadataStore(engine, "Files", "userId", "fileId")
    webhooks = SqlMetadataStore(engine, "Webhooks", "userId", "webhookId")
    return files, webhooks


@pytest.fixture
def files_store(metadata_stores):
    return metadata_stores[0]


@pytest.fixture
def webhooks_store(metadata_stores):
    return metadata_stores[1]


@pytest.fixture
def mock_blob_store() -> MagicMock:
    blob_store = MagicMock(spec=S3BlobStore)
    blob_store.create_session.return_value = "mock-upload-id"
    blob_store.presign_put.return_value = "https://s3.mock/presigned-put"
    return blob_store


@pytest.fixture
def mock_sink() -> MagicMock:
    sink = MagicMock(spec=DiscordWebhookSink)
    sink.post.return_value = "1234567890"
    sink.delete_message.return_value = True
    return sink


@pytest.fixture
def test_app_client(api_config, files_store, webhooks_store, mock_blob_store, mock_sink):
    app.dependency_overrides[get_api_config] = lambda: api_config
    app.dependency_overrides[get_files_store] = lambda: files_store
    app.dependency_overrides[get_webhooks_store] = lambda: webhooks_store
    app.dependency_overrides[get_blob_store] = lambda: mock_blob_store
    app.dependency_overrides[get_notification_sink] = lambda: mock_sink
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token('user-1')}"}


@pytest.fixture
def webhook_item(webhooks_store) -> dict:
    item = {
        "userId": "user-1",
        "webhookId": "webhook-1",
        "name": "releases",
        "webhookUrl": "https://discord.test/api/webhooks/1/token",
        "serverName": "hookdrop",
        "channelName": "releases",
        "createdAt": "2026-01-01T00:00:00.000Z",
    }
    webhooks_store.put(item)
    return item


@pytest.fixture
def upload_session() -> UploadSession:
    return UploadSession(
        upload_id="upload-1",
        key="uploads/file-1/video.mp4",
        file_id="file-1",
        size=100,
        content_type="video/mp4",
    )


@pytest.fixture
def temp_yaml_file(tmp_path):
    def write(name: str, content: dict):
        path = tmp_path / name
        with open(path, "w") as fd:
            yaml.dump(content, fd)
        return path

    return write


@pytest.fixture
def make_auth_headers():
    return lambda subject: {"Authorization": f"Bearer {make_token(subject)}"}
