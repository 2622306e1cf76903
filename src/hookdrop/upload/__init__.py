"""Client-side multipart upload: planning, part transfer, orchestration and finalization."""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.api import UploadPart
    from ..models.upload import UploadSession

log = logging.getLogger(__name__)


class PartAuthorizer(metaclass=abc.ABCMeta):
    """Hands out short-lived URLs for uploading single parts directly to storage"""

    @abc.abstractmethod
    def authorize(self, session: UploadSession, part_number: int) -> str:
        """
        Obtain a presigned URL for one part of an upload session

        :param session: The upload session the part belongs to
        :param part_number: 1-based part number
        :return: URL accepting a single PUT of the part's bytes
        :raises AuthorizationError: when no URL could be obtained
        """
        raise NotImplementedError()


class SessionStore(metaclass=abc.ABCMeta):
    """Completes or releases multipart upload sessions on the storage side"""

    @abc.abstractmethod
    def complete(self, session: UploadSession, parts: list[UploadPart]):
        """
        Commit all uploaded parts into the final object

        :param session: The upload session to complete
        :param parts: Uploaded parts, ascending by part number
        """
        raise NotImplementedError()

    @abc.abstractmethod
    def abort(self, session: UploadSession):
        """
        Release all storage held by an unfinished upload session

        :param session: The upload session to abort
        """
        raise NotImplementedError()
