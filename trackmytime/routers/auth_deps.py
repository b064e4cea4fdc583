"""
Request-scoped dependencies: identity provider and caller AuthContext.

The AuthContext is built here once per request from the bearer token and
handed to services explicitly.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext, decode_access_token
from trackmytime.core.config import settings
from trackmytime.core.exceptions import AuthenticationError
from trackmytime.database import get_db
from trackmytime.services.access_policy import ApprovalPolicy
from trackmytime.services.identity import DirectoryIdentityProvider, IdentityProvider

logger = logging.getLogger(__name__)

# Optional credential: a missing or non-bearer header yields None instead of a 403
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_identity_provider() -> IdentityProvider:
    path = settings.identity_directory_path
    if path:
        return DirectoryIdentityProvider.from_file(path)
    logger.warning("IDENTITY_DIRECTORY_PATH not set; identity lookups will only use employee records")
    return DirectoryIdentityProvider()


def get_optional_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    act_as: Optional[str] = Header(None, alias=settings.impersonation_header),
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Optional[AuthContext]:
    """None when no bearer token is sent; 401 when one is sent but invalid."""
    token = credentials.credentials.strip() if credentials is not None else ""
    if not token:
        return None

    payload = decode_access_token(token)
    user_id = payload["sub"]
    if act_as and act_as != user_id:
        policy = ApprovalPolicy(db, identity_provider)
        return policy.authorize_impersonation(user_id, act_as)
    return AuthContext(user_id=user_id, claims=payload)


def get_auth_context(
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
) -> AuthContext:
    if auth is None:
        logger.info("Authentication failed: missing bearer token")
        raise AuthenticationError()
    return auth
