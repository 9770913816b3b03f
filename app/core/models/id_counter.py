"""Named counters for human-readable ids (F001 ...)."""

from sqlalchemy import Column, Integer, String

from app.db.session import Base


class IdCounter(Base):
    __tablename__ = "id_counters"

    name = Column(String(50), primary_key=True)
    last_id = Column(Integer, nullable=False, default=0)
