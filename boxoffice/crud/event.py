import hashlib
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.models.event import Event
from boxoffice.schemas.event import EventCreate


def event_key(name: str) -> str:
    """Deterministic key of an event: SHA-256 hex digest of its name."""
    return hashlib.sha256(name.encode("utf-8")).hexdigest()


async def get_event_by_name(db: AsyncSession, name: str) -> Optional[Event]:
    result = await db.execute(select(Event).filter(Event.key == event_key(name)))
    first: Optional[Event] = result.scalars().first()
    return first


async def get_event_names(db: AsyncSession) -> list[str]:
    """Names of all events in creation order"""
    result = await db.execute(select(Event.name).order_by(Event.id))
    return list(result.scalars().all())


async def count_events(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Event.id)))
    return int(result.scalar_one())


async def create_event(db: AsyncSession, event: EventCreate) -> Event:
    # Flushed only; the caller's transaction decides whether it is committed
    db_event = Event(**event.model_dump(), key=event_key(event.name))
    db.add(db_event)
    await db.flush()
    return db_event
