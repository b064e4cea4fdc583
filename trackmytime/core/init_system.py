import logging
from datetime import date, datetime, timezone

from trackmytime.core.config import settings
from trackmytime.database import SessionLocal
from trackmytime.models.employee import Employee
from trackmytime.models.time_off_request import RequestStatus, TimeOffRequest

logger = logging.getLogger(__name__)

DEMO_EMPLOYEES = [
    {"external_user_id": "user_chris", "full_name": "Chris Manfredi", "email": "chris@example.com", "role": "Time Off Manager"},
    {"external_user_id": "user_kayley", "full_name": "Kayley Manfredi", "email": "kayley@example.com", "role": "Employee"},
    {"external_user_id": "user_jordan", "full_name": "Jordan Lee", "email": "jordan@example.com", "role": "Engineering Manager"},
    {"external_user_id": "user_priya", "full_name": "Priya Patel", "email": "priya@example.com", "role": "QA Analyst"},
]


def seed_demo_data(db) -> bool:
    """Insert demo employees and the req-kayley request into an empty database."""
    if db.query(TimeOffRequest).count() > 0:
        logger.info("System initialization check: time-off requests already present.")
        return False

    employees = {}
    for values in DEMO_EMPLOYEES:
        employee = db.query(Employee).filter(Employee.external_user_id == values["external_user_id"]).first()
        if employee is None:
            employee = Employee(**values)
            db.add(employee)
        employees[values["external_user_id"]] = employee
    db.flush()

    submitted = datetime(2025, 10, 23, 9, 0, tzinfo=timezone.utc)
    kayley = employees["user_kayley"]
    db.add(TimeOffRequest(
        id="req-kayley",
        employee_id=kayley.id,
        external_user_id=kayley.external_user_id,
        status=RequestStatus.PENDING.value,
        type="PTO",
        start_date=date(2025, 11, 11),
        end_date=date(2025, 11, 12),
        hours=8,
        submitted_at=submitted,
        last_updated_at=submitted,
    ))
    db.commit()
    logger.info("✓ Seeded demo employees and requests.")
    return True


def init_system_data():
    """Seeds demo data at startup when SEED_DEMO_DATA is enabled."""
    if not settings.seed_demo_data:
        return
    db = SessionLocal()
    try:
        seed_demo_data(db)
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
    finally:
        db.close()
