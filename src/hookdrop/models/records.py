"""Records kept in the metadata store."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from .common import CamelModel


def iso_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FileStatus(StrEnum):
    UPLOADING = "uploading"
    POSTED = "posted"
    ERROR = "error"


class StoredRecord(CamelModel):
    # items written by older deployments may carry additional attributes
    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_item(self) -> dict:
        """Serialize to a store item with camelCase attribute names and no empty attributes."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FileRecord(StoredRecord):
    """
    A file brokered through hookdrop.
    Created in state ``uploading``; the notifier moves it to ``posted`` or ``error``.
    """

    user_id: str
    file_id: str
    filename: str
    s3_key: str
    webhook_id: str
    status: FileStatus = FileStatus.UPLOADING
    content_type: str
    size: int
    created_at: str
    custom_message: str | None = None
    cloud_front_url: str | None = None
    discord_message_id: str | None = None
    posted_at: str | None = None
    error_message: str | None = None


class WebhookRecord(StoredRecord):
    user_id: str
    webhook_id: str
    name: str
    webhook_url: str
    server_name: str | None = None
    channel_name: str | None = None
    created_at: str
