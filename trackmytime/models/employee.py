import uuid

from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from trackmytime.database import Base


class Employee(Base):
    """Local mirror of an identity-provider user. Upserted on sync, never deleted."""
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_user_id = Column(String(191), unique=True, index=True, nullable=False)
    full_name = Column(String(191), nullable=False)
    email = Column(String(191), index=True, nullable=False)
    role = Column(String(100), nullable=False, default="employee")
    photo_url = Column(Text, nullable=True)
    team = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, default=dict)

    time_off_requests = relationship("TimeOffRequest", back_populates="employee")

    def __repr__(self):
        return f"<Employee {self.external_user_id} ({self.role})>"
