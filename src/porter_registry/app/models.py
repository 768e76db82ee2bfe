# app/models.py
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import relationship

from ..database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite's CURRENT_TIMESTAMP stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RecordState(str, Enum):
    """Lifecycle of a registry record. `deleted` is terminal."""
    active = "active"
    updated = "updated"
    deleted = "deleted"


class LifecycleMixin:
    """Audit timestamps shared by services and gates.

    `deleted_at` is the only soft-delete marker; rows are never removed.
    """
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def state(self) -> RecordState:
        if self.deleted_at is not None:
            return RecordState.deleted
        if self.updated_at is not None:
            return RecordState.updated
        return RecordState.active

    @property
    def is_deleted(self) -> bool:
        return self.state is RecordState.deleted

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class Service(LifecycleMixin, Base):
    __tablename__ = "services"
    # AUTOINCREMENT keeps SQLite from handing out an id twice
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    host = Column(Text, nullable=False)
    port = Column(Integer, nullable=False)

    gates = relationship("Gate", back_populates="service", order_by="Gate.id")

    def __repr__(self):
        return f"<Service(id={self.id}, address='{self.address}', state='{self.state.value}')>"


class Gate(LifecycleMixin, Base):
    __tablename__ = "gates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    host = Column(Text, nullable=False)
    port = Column(Integer, nullable=False)

    service = relationship("Service", back_populates="gates")

    def __repr__(self):
        return f"<Gate(id={self.id}, address='{self.address}', service_id={self.service_id})>"
