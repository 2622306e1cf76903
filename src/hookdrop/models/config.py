from os import PathLike
from typing import Literal, Self

from pydantic import AnyHttpUrl, AnyUrl, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ..constants import MAX_RETRIES, MULTIPART_MIN_PART_SIZE, MULTIPART_THRESHOLD, PART_SIZE, RETRY_BASE_DELAY
from ..utils.config import load_config_files
from .common import StrictBaseModel


class S3Options(StrictBaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    """
    The name of the upload bucket.
    """

    endpoint_url: AnyHttpUrl | None = None
    """
    The URL for the S3 service. Defaults to AWS.
    """

    region_name: str | None = None
    """
    The region name for the S3 bucket.
    """

    access_key: str | None = None
    """
    The access key for the S3 bucket.
    If undefined, boto3 falls back to its default credential chain.
    """

    secret: str | None = None
    """
    The secret key for the S3 bucket.
    """

    session_token: str | None = None
    """
    The session token for temporary credentials (optional).
    """

    use_ssl: bool = True
    """
    Whether to use SSL for S3 operations.
    """

    proxy_url: AnyUrl | None = None
    """
    The proxy URL for S3 operations (optional).
    """


class MetadataOptions(StrictBaseModel):
    model_config = ConfigDict(frozen=True)

    backend: Literal["dynamodb", "sql"] = "dynamodb"
    """
    Storage backend for file and webhook records.
    ``sql`` keeps both tables in a local database and is meant for development.
    """

    files_table: str = "Files"
    """
    Name of the table holding file records (partition key ``userId``, sort key ``fileId``).
    """

    webhooks_table: str = "Webhooks"
    """
    Name of the table holding webhook records (partition key ``userId``, sort key ``webhookId``).
    """

    region_name: str | None = None
    """
    DynamoDB region (``dynamodb`` backend only).
    """

    endpoint_url: AnyHttpUrl | None = None
    """
    DynamoDB endpoint, e.g. for DynamoDB Local (``dynamodb`` backend only).
    """

    database_url: str = Field("sqlite:///hookdrop.sqlite", examples=["sqlite:///hookdrop.sqlite"])
    """
    SQLAlchemy database URL (``sql`` backend only).
    """


class AuthConfig(StrictBaseModel):
    jwks_url: AnyHttpUrl | None = None
    """
    JWKS endpoint of the identity provider, e.g. ``https://tenant.auth0.com/.well-known/jwks.json``.
    """

    issuer: str | None = None
    """
    Expected ``iss`` claim.
    """

    audience: str | None = None
    """
    Expected ``aud`` claim.
    """

    secret_key: str | None = None
    """
    Shared secret for HS256 tokens. Only for local deployments without an identity provider.
    """

    algorithm: str = "RS256"

    @model_validator(mode="after")
    def validate_key_source(self) -> Self:
        if self.jwks_url is None and self.secret_key is None:
            raise ValueError("Either jwks_url or secret_key must be set.")
        if self.jwks_url is not None and self.secret_key is not None:
            raise ValueError("Only one of jwks_url or secret_key must be set.")
        return self


class HookdropSettings(BaseSettings):
    """
    Base class for file-backed settings.
    Values from ``HOOKDROP_``-prefixed environment variables take precedence over file values.
    """

    model_config = SettingsConfigDict(
        env_prefix="hookdrop_",
        env_nested_delimiter="__",
        extra="forbid",
        validate_assignment=True,
        use_enum_values=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_path(cls, *paths: str | PathLike) -> Self:
        return cls(**load_config_files(paths))


class NotifierConfig(HookdropSettings):
    metadata: MetadataOptions = MetadataOptions()

    cdn_domain: str
    """
    Domain under which uploaded objects are publicly served (CloudFront distribution).
    """


class ApiConfig(NotifierConfig):
    s3: S3Options

    auth: AuthConfig


class ClientConfig(HookdropSettings):
    api_base_url: AnyHttpUrl
    """
    Base URL of the hookdrop API, e.g. ``https://uploads.example.org/api``.
    """

    token: str | None = None
    """
    Bearer token issued by the identity provider.
    """

    part_size: int = Field(PART_SIZE, ge=MULTIPART_MIN_PART_SIZE)
    """
    Size of a single part for multipart uploads in bytes.
    """

    multipart_threshold: int = Field(MULTIPART_THRESHOLD, ge=1)
    """
    Files of at least this size are uploaded in parts.
    """

    max_retries: int = Field(MAX_RETRIES, ge=1)
    """
    Attempts per part, including the first one.
    """

    retry_base_delay: float = Field(RETRY_BASE_DELAY, ge=0)
    """
    Delay in seconds before the first retry of a part.
    """
