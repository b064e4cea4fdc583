"""
Identity provider adapter.

Authentication, sessions and profile storage belong to an external
identity provider. This service only needs one question answered:
"given a user id, who is it?" (display name, e-mail, photo and the public
metadata that carries role and team). `DirectoryIdentityProvider` answers
it from a JSON directory file or an in-memory mapping.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _non_blank(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.strip() != ""


class IdentityProfile(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    primary_email: Optional[str] = None
    email_addresses: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    public_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def composed_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if _non_blank(p)]
        return " ".join(parts) if parts else None

    @property
    def display_full_name(self) -> Optional[str]:
        if _non_blank(self.full_name):
            return self.full_name
        return self.composed_name

    @property
    def email(self) -> Optional[str]:
        if _non_blank(self.primary_email):
            return self.primary_email
        return self.email_addresses[0] if self.email_addresses else None

    @property
    def role_metadata(self) -> Any:
        return self.public_metadata.get("role")


class NormalizedUser(BaseModel):
    id: str
    display_name: str
    email: Optional[str] = None
    photo_url: Optional[str] = None
    role: Optional[str] = None


def safe_display_name(profile: IdentityProfile) -> str:
    """Name recorded on audit rows: full name, username, e-mail, then id."""
    for candidate in (profile.display_full_name, profile.username, profile.email):
        if _non_blank(candidate):
            return candidate
    return profile.id


def normalize_identity_user(
    profile: Optional[IdentityProfile],
    explicit_email: Optional[str] = None,
) -> Optional[NormalizedUser]:
    if profile is None:
        return None

    email = explicit_email or profile.email
    display_name = profile.composed_name or profile.username or email or profile.id

    role = profile.role_metadata
    if isinstance(role, list):
        role = ", ".join(str(r) for r in role)
    elif not isinstance(role, str):
        role = None

    return NormalizedUser(
        id=profile.id,
        display_name=display_name,
        email=email,
        photo_url=profile.image_url,
        role=role,
    )


class IdentityProvider:
    def get_user(self, user_id: str) -> Optional[IdentityProfile]:
        raise NotImplementedError


class DirectoryIdentityProvider(IdentityProvider):
    def __init__(self, profiles: Iterable[Union[IdentityProfile, Dict[str, Any]]] = ()):
        self._profiles: Dict[str, IdentityProfile] = {}
        for profile in profiles:
            self.add(profile)

    def add(self, profile: Union[IdentityProfile, Dict[str, Any]]) -> IdentityProfile:
        if not isinstance(profile, IdentityProfile):
            profile = IdentityProfile.model_validate(profile)
        self._profiles[profile.id] = profile
        return profile

    def get_user(self, user_id: str) -> Optional[IdentityProfile]:
        return self._profiles.get(user_id)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DirectoryIdentityProvider":
        """Load a JSON list of profiles (or {"users": [...]})."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("users", [])
        provider = cls(raw)
        logger.info(f"Loaded {len(provider._profiles)} identity profile(s) from {path}")
        return provider
