from functools import lru_cache

from fastapi import Depends

from ..models.config import ApiConfig, MetadataOptions, S3Options
from ..notifier.discord import DiscordWebhookSink
from ..stores import MetadataStore, init_metadata_stores
from ..transfer import init_s3_client
from .blobstore import S3BlobStore
from .config import get_api_config


@lru_cache
def _metadata_stores(options: MetadataOptions) -> tuple[MetadataStore, MetadataStore]:
    return init_metadata_stores(options)


@lru_cache
def _blob_store(s3_options: S3Options) -> S3BlobStore:
    return S3BlobStore(init_s3_client(s3_options), s3_options.bucket)


def get_files_store(config: ApiConfig = Depends(get_api_config)) -> MetadataStore:
    """FastAPI dependency for the file records table."""
    files, _ = _metadata_stores(config.metadata)
    return files


def get_webhooks_store(config: ApiConfig = Depends(get_api_config)) -> MetadataStore:
    """FastAPI dependency for the webhook records table."""
    _, webhooks = _metadata_stores(config.metadata)
    return webhooks


def get_blob_store(config: ApiConfig = Depends(get_api_config)) -> S3BlobStore:
    """FastAPI dependency for the upload bucket."""
    return _blob_store(config.s3)


def get_notification_sink() -> DiscordWebhookSink:
    return DiscordWebhookSink()
