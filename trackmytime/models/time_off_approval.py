import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from trackmytime.database import Base


class TimeOffApproval(Base):
    """Append-only audit row, one per status transition."""
    __tablename__ = "time_off_approvals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("time_off_requests.id", ondelete="CASCADE"), index=True, nullable=False)
    actioned_by_external_user_id = Column(String(191), nullable=False)
    actioned_by_name = Column(String(191), nullable=False)
    action = Column(String(20), nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    request = relationship("TimeOffRequest", back_populates="approvals")
