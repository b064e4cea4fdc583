import enum
import uuid

from sqlalchemy import Column, String, Text, Date, Integer, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from trackmytime.database import Base


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"


STATUS_LABELS = {
    RequestStatus.PENDING.value: "Pending",
    RequestStatus.APPROVED.value: "Approved",
    RequestStatus.DENIED.value: "Denied",
    # Cancelled has no label of its own in the dashboard
    RequestStatus.CANCELLED.value: "Denied",
}


def status_label(status) -> str:
    value = status.value if isinstance(status, RequestStatus) else status
    return STATUS_LABELS.get(value or RequestStatus.PENDING.value, "Pending")


class TimeOffRequest(Base):
    __tablename__ = "time_off_requests"
    __table_args__ = (
        Index("time_off_requests_date_range_idx", "start_date", "end_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id = Column(String(36), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    # Kept even if the employee row goes away
    external_user_id = Column(String(191), index=True, nullable=False)
    status = Column(String(20), default=RequestStatus.PENDING.value, index=True, nullable=False)
    type = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    hours = Column(Integer, nullable=True)
    note = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    last_updated_at = Column(DateTime(timezone=True), nullable=False)
    extra_metadata = Column("metadata", JSON, default=dict)

    employee = relationship("Employee", back_populates="time_off_requests")
    approvals = relationship(
        "TimeOffApproval",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="TimeOffApproval.created_at",
    )

    @property
    def status_label(self) -> str:
        return status_label(self.status)
