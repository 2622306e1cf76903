"""Client-side state of a multipart upload session."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import Field

from .common import StrictBaseModel


class SessionState(StrEnum):
    INITIATED = "initiated"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ABORTING = "aborting"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.ABORTED})

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.INITIATED: frozenset({SessionState.COMPLETING, SessionState.ABORTING}),
    SessionState.COMPLETING: frozenset({SessionState.COMPLETED, SessionState.ABORTING}),
    SessionState.ABORTING: frozenset({SessionState.ABORTED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.ABORTED: frozenset(),
}


class UploadSession(StrictBaseModel):
    """One in-progress multipart transfer."""

    upload_id: str = Field(..., description="Opaque multipart upload ID issued by the object store.")
    key: str = Field(..., description="Target object key.")
    file_id: str
    size: int = Field(..., gt=0)
    content_type: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    state: SessionState = SessionState.INITIATED

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
