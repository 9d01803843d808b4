from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from boxoffice.core.database_manager import Base

if TYPE_CHECKING:
    from .event import Event


class TicketHolder(Base):
    """Membership of one identity in the holder set of one event"""

    __tablename__ = "ticket_holders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id"), nullable=False, index=True
    )
    holder: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    event: Mapped["Event"] = relationship("Event", back_populates="holders")

    __table_args__ = (
        UniqueConstraint("event_id", "holder", name="uq_ticket_holder_event_holder"),
        Index("idx_ticket_holder_holder_event", "holder", "event_id"),
    )
