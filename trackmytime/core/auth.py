"""
Bearer-token handling and the per-request caller identity.

Tokens are HS256 JWTs whose subject is the identity-provider user id.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from trackmytime.core.config import settings
from trackmytime.core.exceptions import AuthenticationError


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. Built once per request by the auth dependency."""
    user_id: str
    impersonator_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_impersonated(self) -> bool:
        return self.impersonator_id is not None


def create_access_token(user_id: str, expires_minutes: Optional[int] = None, **claims) -> str:
    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        **claims,
        "sub": user_id,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token.") from exc

    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token.")
    return payload
