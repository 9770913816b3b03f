"""Per-student fee overrides and their append-only revision history."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint

from app.core.utils import utcnow
from app.db.session import Base


class CustomStudentFee(Base):
    """Current override for a (student, fee head) pair. Deactivated, never deleted."""

    __tablename__ = "custom_student_fees"
    __table_args__ = (
        UniqueConstraint("student_id", "fee_id", name="uq_custom_student_fee_student_fee"),
        CheckConstraint("new_amount >= 0", name="chk_custom_student_fee_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(50), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    fee_id = Column(String(20), ForeignKey("fee_settings.fee_id", ondelete="RESTRICT"), nullable=False)
    new_amount = Column(Numeric(12, 2), nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class CustomStudentFeeRevision(Base):
    """
    Immutable snapshot written on every override change.
    Pricing of a past occurrence reads the revision in force at that occurrence's period start.
    """

    __tablename__ = "custom_student_fee_revisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(50), nullable=False, index=True)
    fee_id = Column(String(20), nullable=False)
    action_type = Column(String(20), nullable=False)  # CREATE, UPDATE, DEACTIVATE
    new_amount = Column(Numeric(12, 2), nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=False)
    active = Column(Boolean, nullable=False)
    reason = Column(Text, nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
