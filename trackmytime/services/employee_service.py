import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trackmytime.core.auth import AuthContext
from trackmytime.core.exceptions import NotFoundError
from trackmytime.models.employee import Employee
from trackmytime.services.base import BaseService
from trackmytime.services.identity import IdentityProvider, IdentityProfile, normalize_identity_user
from trackmytime.services.view_cache import ViewCache, view_cache as default_view_cache

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "employee"


def _metadata_string(profile: IdentityProfile, key: str) -> Optional[str]:
    value = profile.public_metadata.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


class EmployeeService(BaseService):
    """Employee rows mirrored from the identity provider."""

    def __init__(
        self,
        db: Session,
        identity_provider: IdentityProvider,
        view_cache: Optional[ViewCache] = None,
    ):
        super().__init__(db)
        self.identity_provider = identity_provider
        self.view_cache = view_cache or default_view_cache

    def get_employee_by_external_id(self, external_user_id: str) -> Optional[Employee]:
        return self.db.query(Employee).filter(Employee.external_user_id == external_user_id).first()

    def list_employees(self) -> List[Employee]:
        return self.db.query(Employee).order_by(Employee.full_name.asc()).all()

    def sync_employee(self, external_user_id: str) -> Employee:
        """
        Upsert the employee row for an identity-provider user.

        Role and team only overwrite stored values when the provider has a
        non-blank string for them; new rows default to the "employee" role.
        Flushes but does not commit.
        """
        profile = self.identity_provider.get_user(external_user_id)
        if profile is None:
            raise NotFoundError("User not found in identity provider.")

        normalized = normalize_identity_user(profile)
        role = _metadata_string(profile, "role")
        team = _metadata_string(profile, "team")
        metadata: Optional[Dict[str, Any]] = dict(profile.public_metadata) or None

        email = normalized.email or profile.username or profile.id
        full_name = next(
            value for value in (
                normalized.display_name,
                profile.full_name,
                profile.composed_name,
                profile.username,
                email,
            )
            if isinstance(value, str) and value.strip()
        )

        employee = self.get_employee_by_external_id(external_user_id)
        now = datetime.now(timezone.utc)
        if employee is None:
            employee = Employee(
                external_user_id=external_user_id,
                role=role or DEFAULT_ROLE,
                created_at=now,
            )
            self.db.add(employee)
            self.log_info(f"Creating employee for {external_user_id}")

        employee.email = email
        employee.full_name = full_name
        employee.photo_url = normalized.photo_url
        employee.updated_at = now
        if role:
            employee.role = role
        if team:
            employee.team = team
        if metadata:
            employee.extra_metadata = metadata

        self.db.flush()
        return employee

    def get_or_create_employee(self, external_user_id: str) -> Employee:
        existing = self.get_employee_by_external_id(external_user_id)
        if existing is not None:
            return existing
        return self.sync_employee(external_user_id)

    def sync_current_user(self, auth: Optional[AuthContext]) -> Dict[str, Any]:
        """Result shape of POST /users/sync: success with the employee, or an error message."""
        if auth is None:
            return {"status": "error", "message": "Not authenticated."}

        try:
            employee = self.sync_employee(auth.user_id)
            self.db.commit()
            self.db.refresh(employee)
        except NotFoundError:
            self.db.rollback()
            return {"status": "error", "message": "Unable to sync user."}
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to sync user {auth.user_id}", exc_info=True)
            return {"status": "error", "message": "Failed to sync user."}

        # Names and roles are rendered in every request row
        self.view_cache.invalidate()
        return {"status": "success", "employee": employee}
