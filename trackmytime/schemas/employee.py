from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    external_user_id: str
    full_name: str
    email: str
    role: str
    photo_url: Optional[str] = None
    team: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra_metadata")


class EmployeeListResponse(BaseModel):
    employees: List[EmployeeResponse]


class SyncResponse(BaseModel):
    status: str
    employee: Optional[EmployeeResponse] = None
    message: Optional[str] = None
