from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient, PyJWTError

from ..models.config import ApiConfig, AuthConfig
from .config import get_api_config

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def _jwks_client(jwks_url: str) -> PyJWKClient:
    return PyJWKClient(jwks_url)


def validate_token(token: str, config: AuthConfig) -> str:
    """
    Verify a bearer token issued by the identity provider.

    :return: the token's subject, used as the user ID
    :raises PyJWTError: if the token is invalid, expired or lacks a subject
    """
    if config.jwks_url is not None:
        key = _jwks_client(str(config.jwks_url)).get_signing_key_from_jwt(token).key
    else:
        key = config.secret_key
    payload = jwt.decode(
        token,
        key,
        algorithms=[config.algorithm],
        audience=config.audience,
        issuer=config.issuer,
        options={"verify_aud": config.audience is not None, "verify_iss": config.issuer is not None},
    )
    subject = payload.get("sub")
    if not subject:
        raise PyJWTError("Token has no subject")
    return subject


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    config: ApiConfig = Depends(get_api_config),
) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception
    try:
        return validate_token(credentials.credentials, config.auth)
    except PyJWTError as e:
        raise credentials_exception from e
