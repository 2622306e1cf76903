import logging
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..models.api import (
    AbortUploadRequest,
    CompleteUploadRequest,
    CreateWebhookRequest,
    HealthCheckResponse,
    InitiateUploadRequest,
    InitiateUploadResponse,
    PartUrlRequest,
    PartUrlResponse,
    SuccessResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ..models.config import ApiConfig
from ..models.records import FileRecord, WebhookRecord
from ..notifier.discord import DiscordWebhookSink
from ..stores import MetadataStore
from . import services
from .auth import get_current_user_id
from .blobstore import S3BlobStore
from .config import get_api_config
from .dependencies import get_blob_store, get_files_store, get_notification_sink, get_webhooks_store

log = logging.getLogger(__name__)

app = FastAPI(
    title="hookdrop API",
    description="API for brokering direct-to-S3 uploads and announcing them on webhooks.",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})


router = APIRouter(prefix="/api")

CurrentUser = Annotated[str, Depends(get_current_user_id)]
FilesStore = Annotated[MetadataStore, Depends(get_files_store)]
WebhooksStore = Annotated[MetadataStore, Depends(get_webhooks_store)]
BlobStore = Annotated[S3BlobStore, Depends(get_blob_store)]
Config = Annotated[ApiConfig, Depends(get_api_config)]


@router.get("/health", response_model=HealthCheckResponse)
async def health() -> HealthCheckResponse:
    return HealthCheckResponse()


@router.get("/webhooks", response_model=list[WebhookRecord], response_model_exclude_none=True)
def list_webhooks(user_id: CurrentUser, webhooks: WebhooksStore):
    return services.list_webhooks(webhooks, user_id)


@router.post(
    "/webhooks",
    response_model=WebhookRecord,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_webhook(request: CreateWebhookRequest, user_id: CurrentUser, webhooks: WebhooksStore):
    return services.create_webhook(webhooks, user_id, request)


@router.delete("/webhooks/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_webhook(webhook_id: str, user_id: CurrentUser, webhooks: WebhooksStore):
    if not services.delete_webhook(webhooks, user_id, webhook_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/files", response_model=list[FileRecord], response_model_exclude_none=True)
def list_files(user_id: CurrentUser, files: FilesStore, webhookId: str | None = None):  # noqa: N803
    return services.list_files(files, user_id, webhookId)


@router.post("/files/upload-url", response_model=UploadUrlResponse)
def create_upload_url(  # noqa: PLR0913
    request: UploadUrlRequest,
    user_id: CurrentUser,
    files: FilesStore,
    webhooks: WebhooksStore,
    blob_store: BlobStore,
    config: Config,
):
    services.require_webhook(webhooks, user_id, request.webhook_id)
    return services.create_upload_url(files, blob_store, user_id, request, config.cdn_domain)


@router.post("/files/upload/initiate", response_model=InitiateUploadResponse)
def initiate_upload(  # noqa: PLR0913
    request: InitiateUploadRequest,
    user_id: CurrentUser,
    files: FilesStore,
    webhooks: WebhooksStore,
    blob_store: BlobStore,
    config: Config,
):
    log.info(f"User '{user_id}' initiated multipart upload of '{request.filename}' ({request.size} bytes)")
    services.require_webhook(webhooks, user_id, request.webhook_id)
    return services.initiate_multipart_upload(files, blob_store, user_id, request, config.cdn_domain)


@router.post("/files/upload/part-url", response_model=PartUrlResponse)
def get_part_url(request: PartUrlRequest, user_id: CurrentUser, blob_store: BlobStore):
    return services.get_part_url(blob_store, request)


@router.post("/files/upload/complete", response_model=SuccessResponse)
def complete_upload(request: CompleteUploadRequest, user_id: CurrentUser, files: FilesStore, blob_store: BlobStore):
    log.info(f"User '{user_id}' is completing upload of file {request.file_id} ({len(request.parts)} parts)")
    services.complete_multipart_upload(files, blob_store, user_id, request)
    return SuccessResponse()


@router.post("/files/upload/abort", response_model=SuccessResponse)
def abort_upload(request: AbortUploadRequest, user_id: CurrentUser, files: FilesStore, blob_store: BlobStore):
    log.info(f"User '{user_id}' aborted upload {request.upload_id}")
    services.abort_multipart_upload(files, blob_store, user_id, request)
    return SuccessResponse()


@router.get("/files/{file_id}", response_model=FileRecord, response_model_exclude_none=True)
def get_file(file_id: str, user_id: CurrentUser, files: FilesStore):
    return services.require_file(files, user_id, file_id)


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(  # noqa: PLR0913
    file_id: str,
    user_id: CurrentUser,
    files: FilesStore,
    webhooks: WebhooksStore,
    blob_store: BlobStore,
    sink: Annotated[DiscordWebhookSink, Depends(get_notification_sink)],
):
    record = services.require_file(files, user_id, file_id)
    if not services.delete_file(files, webhooks, blob_store, sink, user_id, record):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete file")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


app.include_router(router)
