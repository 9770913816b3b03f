"""Student record as seen by the fee engine. Owned and written by the student module."""

from sqlalchemy import Boolean, Column, Date, DateTime, String

from app.core.utils import utcnow
from app.db.session import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    class_name = Column(String(50), nullable=False, index=True)
    number = Column(String(30), nullable=True)
    enrolled_on = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
