from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from boxoffice.core.database_manager import Base

REGISTRY_STATE_ID = 1


class RegistryState(Base):
    """Single row holding the owner identity and the accumulated balance"""

    __tablename__ = "registry_state"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, default=REGISTRY_STATE_ID
    )
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
