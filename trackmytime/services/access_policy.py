"""
The single authorization policy for approving and denying requests.

A caller may manage requests when the role metadata from the identity
provider, or failing that the role stored on their employee row,
classifies as manager-level (see `trackmytime.core.roles`).
"""
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.core.config import settings
from trackmytime.core.exceptions import AuthenticationError, AuthorizationError
from trackmytime.core.roles import is_admin, is_manager
from trackmytime.models.employee import Employee
from trackmytime.services.base import BaseService
from trackmytime.services.identity import IdentityProvider, safe_display_name


@dataclass(frozen=True)
class CallerProfile:
    user_id: str
    display_name: str
    identity_role: Any = None
    employee_role: Optional[str] = None

    @property
    def can_manage_requests(self) -> bool:
        return is_manager(self.identity_role) or is_manager(self.employee_role)

    @property
    def is_admin(self) -> bool:
        return is_admin(self.identity_role) or is_admin(self.employee_role)


class ApprovalPolicy(BaseService):
    def __init__(self, db: Session, identity_provider: IdentityProvider):
        super().__init__(db)
        self.identity_provider = identity_provider

    def resolve_caller(self, user_id: str) -> CallerProfile:
        profile = self.identity_provider.get_user(user_id)
        employee = self.db.query(Employee).filter(Employee.external_user_id == user_id).first()

        if profile is not None:
            display_name = safe_display_name(profile)
        elif employee is not None:
            display_name = employee.full_name
        else:
            display_name = user_id

        return CallerProfile(
            user_id=user_id,
            display_name=display_name,
            identity_role=profile.role_metadata if profile is not None else None,
            employee_role=employee.role if employee is not None else None,
        )

    def require_manager(self, auth: Optional[AuthContext]) -> CallerProfile:
        if auth is None:
            raise AuthenticationError()
        caller = self.resolve_caller(auth.user_id)
        if not caller.can_manage_requests:
            self.log_warning(
                "Status change denied: caller lacks manager role",
                user_id=auth.user_id,
                impersonator_id=auth.impersonator_id,
            )
            raise AuthorizationError()
        return caller

    def authorize_impersonation(self, caller_id: str, target_user_id: str) -> AuthContext:
        """Let an admin act as another user. The impersonator stays on the context for auditing."""
        if not settings.allow_impersonation:
            raise AuthorizationError("Impersonation is disabled.")
        caller = self.resolve_caller(caller_id)
        if not caller.is_admin:
            self.log_warning("Impersonation denied", user_id=caller_id, target_user_id=target_user_id)
            raise AuthorizationError("Only administrators may act on behalf of another user.")
        self.log_info("Impersonation granted", user_id=caller_id, target_user_id=target_user_id)
        return AuthContext(user_id=target_user_id, impersonator_id=caller_id)
