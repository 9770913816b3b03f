"""Fee setting (fee head) definitions. Soft delete via is_active so the ledger keeps its references."""

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, Date, DateTime, Integer, Numeric, String, Text

from app.core.utils import utcnow
from app.db.session import Base


class FeeSetting(Base):
    """A recurring (monthly) or one-off fee head, optionally limited to some classes."""

    __tablename__ = "fee_settings"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_fee_setting_amount_non_negative"),
    )

    fee_id = Column(String(20), primary_key=True)
    # Definition order; drives the order of fee analysis items
    position = Column(Integer, nullable=False, unique=True)
    fee_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    # List of class names; NULL means every class
    class_scope = Column(JSON, nullable=True)
    active_from = Column(Date, nullable=True)
    active_to = Column(Date, nullable=True)
    can_override = Column(Boolean, nullable=False, default=False)
    recurring = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
