"""
Construction of boto3 clients and resources from hookdrop configuration.
"""

import logging
from typing import TYPE_CHECKING

import boto3
from boto3 import client as boto3_client  # type: ignore[import-untyped]
from botocore.config import Config as Boto3Config

from .models.config import MetadataOptions, S3Options

log = logging.getLogger(__name__)


if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import DynamoDBServiceResource
    from types_boto3_s3 import S3Client
else:
    # avoid undefined objects when not type checking
    S3Client = object
    DynamoDBServiceResource = object


def _empty_str_to_none(string: str | None) -> str | None:
    # if user specifies empty strings, this might be an issue
    if string == "" or string is None:
        return None
    else:
        return string


def init_s3_client(s3_options: S3Options) -> S3Client:
    """Create a boto3 S3 client from the API configuration."""
    proxy_url = s3_options.proxy_url
    s3_config = Boto3Config(
        proxies={"http": str(proxy_url), "https": str(proxy_url)} if proxy_url is not None else None,
        # presigned URLs must carry SigV4 signatures for multipart uploads
        signature_version="s3v4",
    )

    s3_client: S3Client = boto3_client(
        service_name="s3",
        region_name=_empty_str_to_none(s3_options.region_name),
        use_ssl=s3_options.use_ssl,
        endpoint_url=str(s3_options.endpoint_url) if s3_options.endpoint_url is not None else None,
        aws_access_key_id=_empty_str_to_none(s3_options.access_key),
        aws_secret_access_key=_empty_str_to_none(s3_options.secret),
        aws_session_token=_empty_str_to_none(s3_options.session_token),
        config=s3_config,
    )
    log.debug(f"Initialized S3 client for bucket {s3_options.bucket}")

    return s3_client


def init_dynamodb_resource(metadata_options: MetadataOptions) -> DynamoDBServiceResource:
    """Create a boto3 DynamoDB resource for the metadata tables."""
    endpoint_url = metadata_options.endpoint_url
    return boto3.resource(
        service_name="dynamodb",
        region_name=_empty_str_to_none(metadata_options.region_name),
        endpoint_url=str(endpoint_url) if endpoint_url is not None else None,
    )
