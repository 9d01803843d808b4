from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from boxoffice.core.database_manager import Base

if TYPE_CHECKING:
    from .ticket import TicketHolder


class Event(Base):
    __tablename__ = "events"

    # Autoincrement id doubles as the creation order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_tickets: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    holders: Mapped[List["TicketHolder"]] = relationship(
        "TicketHolder",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="TicketHolder.id",
    )
