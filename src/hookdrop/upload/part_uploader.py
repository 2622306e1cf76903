import time
from collections.abc import Callable

import requests

from ..constants import MAX_RETRIES, PART_UPLOAD_TIMEOUT, RETRY_BASE_DELAY
from ..exceptions import (
    AuthorizationExpiredError,
    IntegrityMissingError,
    PartRejectedError,
    TransientIOError,
)
from . import log


class PartUploader:
    """
    PUTs single parts to presigned URLs and returns the ETag reported by storage.

    Network errors and 5xx responses are retried with exponential backoff;
    every other failure is raised immediately.
    """

    __log = log.getChild("PartUploader")

    def __init__(
        self,
        http: requests.Session | None = None,
        max_attempts: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY,
        timeout: float = PART_UPLOAD_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self._http = http or requests.Session()
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._timeout = timeout
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return self._base_delay * 2 ** (attempt - 1)

    def _put(self, url: str, data: bytes) -> str:
        try:
            response = self._http.put(url, data=data, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise TransientIOError(f"Network error during part upload: {e}") from e

        if response.status_code >= 500:
            raise TransientIOError(f"Storage returned {response.status_code}", status_code=response.status_code)
        if response.status_code == 403:
            raise AuthorizationExpiredError("Storage rejected the presigned URL (403), it may have expired")
        if not response.ok:
            raise PartRejectedError(
                f"Storage rejected the part with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        etag = response.headers.get("ETag")
        if not etag:
            raise IntegrityMissingError("ETag not found in S3 response header.")
        return etag.replace('"', "")

    def upload_part(self, url: str, data: bytes, part_number: int | None = None) -> str:
        """
        Upload one part, retrying transient failures.

        :param url: Presigned URL for this part. It is reused for every attempt.
        :param data: The part's bytes.
        :param part_number: Only used for log messages.
        :return: The part's ETag without surrounding quotes.
        :raises TransientIOError: after ``max_attempts`` failed attempts (the last error).
        :raises IntegrityMissingError, PartRejectedError, AuthorizationExpiredError: without retrying.
        """
        last_error: TransientIOError | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return self._put(url, data)
            except TransientIOError as e:
                last_error = e
                self.__log.warning(
                    f"Part {part_number if part_number is not None else '?'} upload failed "
                    f"(attempt {attempt}/{self._max_attempts}): {e}"
                )
                if attempt < self._max_attempts:
                    self._sleep(self.backoff_delay(attempt))

        raise last_error
