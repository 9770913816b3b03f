"""Per-student optimistic concurrency token for the fee ledger."""

from sqlalchemy import Column, DateTime, Integer, String

from app.core.utils import utcnow
from app.db.session import Base


class StudentLedgerVersion(Base):
    """Bumped by every committed payment batch or reversal for the student."""

    __tablename__ = "student_ledger_versions"

    student_id = Column(String(50), primary_key=True)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
