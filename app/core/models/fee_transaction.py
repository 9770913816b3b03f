"""Fee ledger: append-only payment and reversal entries."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from app.core.enums import LedgerEntryType
from app.core.utils import utcnow
from app.db.session import Base


class FeeTransaction(Base):
    """
    One ledger entry. Rows are never updated or deleted; a payment is undone by
    appending a REVERSAL entry that points at it through reverses_id.
    """

    __tablename__ = "fee_transactions"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="chk_fee_transaction_amount_positive"),
        CheckConstraint("quantity >= 1", name="chk_fee_transaction_quantity"),
        CheckConstraint(
            "entry_type IN ('PAYMENT','REVERSAL')",
            name="chk_fee_transaction_entry_type",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(50), nullable=False, index=True)
    # No FK: soft or hard removal of a fee head must never touch history
    fee_id = Column(String(20), nullable=False, index=True)
    period_month = Column(Integer, nullable=False)
    period_year = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)  # Cash, Mobile Banking, Bank Transfer
    entry_type = Column(String(20), nullable=False, default=LedgerEntryType.PAYMENT.value)
    reverses_id = Column(Integer, ForeignKey("fee_transactions.id", ondelete="RESTRICT"), nullable=True, unique=True)
    description = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def collection_id(self) -> str:
        return f"C{self.id:05d}"
