import json
from typing import Any

from typing_extensions import override

import requests

from ..exceptions import AuthorizationError
from ..models.api import (
    AbortUploadRequest,
    CompleteUploadRequest,
    InitiateUploadRequest,
    InitiateUploadResponse,
    PartUrlRequest,
    PartUrlResponse,
    UploadPart,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ..models.upload import UploadSession
from . import PartAuthorizer, SessionStore, log


class HookdropApiClient(PartAuthorizer, SessionStore):
    """
    Client for the hookdrop HTTP API.

    Acts as the part authorizer and the session store of client-side multipart uploads.
    """

    __log = log.getChild("HookdropApiClient")

    def __init__(self, api_base_url: str, token: str | None = None, timeout: float = 60):
        self._api_base_url = str(api_base_url).rstrip("/")
        self._timeout = timeout
        self._http = requests.Session()
        self._http.headers.update({"Content-Type": "application/json"})
        if token:
            self._http.headers.update({"Authorization": f"Bearer {token}"})

    def _request(self, method: str, endpoint: str, payload: Any = None) -> Any:
        url = f"{self._api_base_url}{endpoint}"
        data = payload.model_dump_json(by_alias=True, exclude_none=True) if payload is not None else None
        response = self._http.request(method, url, data=data, timeout=self._timeout)

        if not response.ok:
            self.__log.error(f"API request to {url} failed with status {response.status_code}.")
            try:
                error_detail = response.json()
                self.__log.error(f"API Error Detail: {error_detail.get('detail', response.text)}")
            except json.JSONDecodeError:
                self.__log.error(f"API Response: {response.text}")
            response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def initiate_upload(self, request: InitiateUploadRequest) -> InitiateUploadResponse:
        self.__log.info(f"Initiating multipart upload of {request.filename} ({request.size} bytes)…")
        return InitiateUploadResponse.model_validate(self._request("POST", "/files/upload/initiate", request))

    def request_upload_url(self, request: UploadUrlRequest) -> UploadUrlResponse:
        return UploadUrlResponse.model_validate(self._request("POST", "/files/upload-url", request))

    def get_part_url(self, upload_id: str, s3_key: str, part_number: int) -> PartUrlResponse:
        request = PartUrlRequest(upload_id=upload_id, s3_key=s3_key, part_number=part_number)
        return PartUrlResponse.model_validate(self._request("POST", "/files/upload/part-url", request))

    @override
    def authorize(self, session: UploadSession, part_number: int) -> str:
        try:
            part_url = self.get_part_url(session.upload_id, session.key, part_number)
        except requests.exceptions.RequestException as e:
            raise AuthorizationError(f"Could not obtain URL for part {part_number}: {e}") from e
        if not part_url.url or part_url.part_number != part_number:
            raise AuthorizationError(f"Malformed URL response for part {part_number}")
        return part_url.url

    @override
    def complete(self, session: UploadSession, parts: list[UploadPart]):
        request = CompleteUploadRequest(
            upload_id=session.upload_id, s3_key=session.key, file_id=session.file_id, parts=parts
        )
        self._request("POST", "/files/upload/complete", request)

    @override
    def abort(self, session: UploadSession):
        request = AbortUploadRequest(upload_id=session.upload_id, s3_key=session.key, file_id=session.file_id)
        self._request("POST", "/files/upload/abort", request)
