import logging
from functools import lru_cache

from fastapi import HTTPException, status

from ..models.config import ApiConfig

log = logging.getLogger(__name__)

CONFIG_FILE_PATH: str | None = None


@lru_cache
def get_api_config() -> ApiConfig:
    """Loads, validates, and caches the API configuration from a file and the environment."""
    try:
        if CONFIG_FILE_PATH is None:
            return ApiConfig.from_path()
        return ApiConfig.from_path(CONFIG_FILE_PATH)
    except RuntimeError as e:
        log.error(f"Configuration file could not be read: {CONFIG_FILE_PATH}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration is missing."
        ) from e
