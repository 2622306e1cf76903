from ..exceptions import SessionFinalizeError, SessionStateError
from ..models.api import UploadPart
from ..models.upload import ALLOWED_TRANSITIONS, SessionState, UploadSession
from . import SessionStore, log


class SessionFinalizer:
    """
    Ends upload sessions: completion after all parts succeeded, abort otherwise.

    Tracks the session state: initiated -> completing -> completed, or
    initiated/completing -> aborting -> aborted. Completed and aborted are final.
    """

    __log = log.getChild("SessionFinalizer")

    def __init__(self, store: SessionStore):
        self._store = store

    @staticmethod
    def _transition(session: UploadSession, target: SessionState):
        if target not in ALLOWED_TRANSITIONS[session.state]:
            raise SessionStateError(
                f"Upload session {session.upload_id} cannot move from '{session.state}' to '{target}'"
            )
        session.state = target

    @staticmethod
    def validate_parts(parts: list[UploadPart]):
        """
        :raises SessionFinalizeError: unless parts are numbered 1..N in ascending order.
        """
        if not parts:
            raise SessionFinalizeError("Cannot complete an upload without parts")
        for expected, part in enumerate(parts, start=1):
            if part.part_number != expected:
                raise SessionFinalizeError(
                    f"Parts must be ascending and contiguous from 1: expected part {expected}, got {part.part_number}"
                )

    def complete(self, session: UploadSession, parts: list[UploadPart]):
        """
        Commit all parts of a session.

        On failure the session stays in state 'completing' and should be aborted by the caller.

        :raises SessionFinalizeError: if the parts are incomplete or storage rejected the completion.
        :raises SessionStateError: if the session already ended.
        """
        self.validate_parts(parts)
        self._transition(session, SessionState.COMPLETING)

        self.__log.info(f"All {len(parts)} parts uploaded. Completing {session.key} (UploadId: {session.upload_id})")
        try:
            self._store.complete(session, parts)
        except Exception as e:
            self.__log.error(f"Failed to complete upload of {session.key}: {e}")
            raise SessionFinalizeError(f"Failed to complete upload of {session.key}") from e

        self._transition(session, SessionState.COMPLETED)

    def abort(self, session: UploadSession):
        """
        Release the session's storage. Best-effort: failures are logged, not raised.

        :raises SessionStateError: if the session already ended.
        """
        self._transition(session, SessionState.ABORTING)
        self.__log.warning(f"Aborting upload of {session.key} (UploadId: {session.upload_id})")
        try:
            self._store.abort(session)
        except Exception:
            self.__log.error(f"Failed to abort multipart upload {session.upload_id}", exc_info=True)
        self._transition(session, SessionState.ABORTED)
