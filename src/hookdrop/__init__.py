"""hookdrop: brokered uploads to S3 with webhook notifications."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hookdrop")
except PackageNotFoundError:
    __version__ = "0.0.0"
