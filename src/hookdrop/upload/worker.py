"""Uploading files through the hookdrop API: single PUT for small files, multipart for large ones."""

import math
from collections.abc import Callable
from os import PathLike
from os.path import getsize
from pathlib import Path

import requests

from ..constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CONTENT_TYPE,
    MULTIPART_MAX_PARTS,
    MULTIPART_THRESHOLD,
    PART_SIZE,
    PART_UPLOAD_TIMEOUT,
)
from ..exceptions import SessionStateError, UploadError
from ..models.api import InitiateUploadRequest, UploadUrlRequest
from ..models.upload import UploadSession
from . import log
from .api_client import HookdropApiClient
from .finalizer import SessionFinalizer
from .orchestrator import ProgressCallback, UploadOrchestrator
from .part_uploader import PartUploader
from .planner import PartTask, needs_multipart, plan_parts

FileSource = bytes | str | PathLike


def _part_reader(source: FileSource) -> Callable[[PartTask], bytes]:
    if isinstance(source, bytes | bytearray | memoryview):
        view = memoryview(source)
        return lambda task: bytes(view[task.start : task.end])

    path = Path(source)

    def read(task: PartTask) -> bytes:
        # one handle per read, workers read concurrently
        with open(path, "rb") as f:
            f.seek(task.start)
            return f.read(task.size)

    return read


def _source_size(source: FileSource) -> int:
    if isinstance(source, bytes | bytearray | memoryview):
        return len(source)
    return getsize(source)


class MultipartUploadWorker:
    """
    Uploads files through the hookdrop API.

    Files below the multipart threshold go up with a single presigned PUT; larger files are
    split into parts uploaded in parallel, then completed, or aborted on the first failure.
    """

    __log = log.getChild("MultipartUploadWorker")

    def __init__(  # noqa: PLR0913
        self,
        api: HookdropApiClient,
        part_size: int = PART_SIZE,
        multipart_threshold: int = MULTIPART_THRESHOLD,
        concurrency: int = DEFAULT_CONCURRENCY,
        uploader: PartUploader | None = None,
    ):
        self._api = api
        self._part_size = part_size
        self._multipart_threshold = multipart_threshold
        self._uploader = uploader or PartUploader()
        self._orchestrator = UploadOrchestrator(api, self._uploader, concurrency=concurrency)
        self._finalizer = SessionFinalizer(api)

    def initiate(  # noqa: PLR0913
        self,
        filename: str,
        size: int,
        webhook_id: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
        custom_message: str | None = None,
    ) -> UploadSession:
        """Start a multipart upload session for a file of ``size`` bytes."""
        num_parts = math.ceil(size / self._part_size)
        if num_parts > MULTIPART_MAX_PARTS:
            raise UploadError(
                f"A file of {size} bytes needs {num_parts} parts of {self._part_size} bytes, "
                f"more than the limit of {MULTIPART_MAX_PARTS}"
            )
        response = self._api.initiate_upload(
            InitiateUploadRequest(
                filename=filename,
                webhook_id=webhook_id,
                content_type=content_type,
                size=size,
                custom_message=custom_message,
            )
        )
        self.__log.info(f"Upload initiated for file ID: {response.file_id}")
        return UploadSession(
            upload_id=response.upload_id,
            key=response.s3_key,
            file_id=response.file_id,
            size=size,
            content_type=content_type,
        )

    def upload_all(
        self,
        session: UploadSession,
        source: FileSource,
        progress_callback: ProgressCallback | None = None,
    ):
        """
        Upload every part of ``source`` and complete the session.

        :param session: A freshly initiated session.
        :param source: The file's bytes or its path; its size must match the session.
        :param progress_callback: Receives the completed fraction after every part.
        :raises Exception: the error that ended the upload, after the session was aborted.
        """
        if session.is_terminal:
            raise SessionStateError(f"Upload session {session.upload_id} already ended in state '{session.state}'")
        try:
            size = _source_size(source)
            if size != session.size:
                raise UploadError(f"File size {size} does not match the session size {session.size}")
            tasks = plan_parts(session.size, self._part_size)
            parts = self._orchestrator.run(session, tasks, _part_reader(source), progress_callback)
            self._finalizer.complete(session, parts)
        except Exception:
            self.__log.error(f"Upload of {session.key} failed. Aborting session.")
            self._finalizer.abort(session)
            raise

        self.__log.info(f"Upload finished successfully for {session.key}!")

    def upload_single(  # noqa: PLR0913
        self,
        source: FileSource,
        filename: str,
        webhook_id: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
        custom_message: str | None = None,
    ) -> str:
        """Upload a small file with one presigned PUT. Returns the file ID."""
        size = _source_size(source)
        response = self._api.request_upload_url(
            UploadUrlRequest(
                filename=filename,
                webhook_id=webhook_id,
                content_type=content_type,
                size=size,
                custom_message=custom_message,
            )
        )
        data = _part_reader(source)(PartTask(part_number=1, start=0, end=size))
        try:
            put = requests.put(
                response.upload_url,
                data=data,
                headers={"Content-Type": content_type},
                timeout=PART_UPLOAD_TIMEOUT,
            )
            put.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Upload failed for file {filename}") from e
        self.__log.info(f"Upload finished successfully for {response.s3_key}!")
        return response.file_id

    def upload_file(  # noqa: PLR0913
        self,
        local_file_path: str | PathLike,
        webhook_id: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
        custom_message: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> str:
        """
        Upload a local file, picking single PUT or multipart by size.

        :return: The file ID assigned by the API.
        """
        local_file_path = Path(local_file_path)
        size = getsize(local_file_path)

        if not needs_multipart(size, self._multipart_threshold):
            file_id = self.upload_single(local_file_path, local_file_path.name, webhook_id, content_type, custom_message)
            if progress_callback is not None:
                progress_callback(1.0)
            return file_id

        session = self.initiate(local_file_path.name, size, webhook_id, content_type, custom_message)
        self.upload_all(session, local_file_path, progress_callback)
        return session.file_id
