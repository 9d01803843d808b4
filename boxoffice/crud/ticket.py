from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.models.event import Event
from boxoffice.models.ticket import TicketHolder


async def get_holder(
    db: AsyncSession, event_id: int, identity: str
) -> Optional[TicketHolder]:
    result = await db.execute(
        select(TicketHolder).filter(
            TicketHolder.event_id == event_id, TicketHolder.holder == identity
        )
    )
    first: Optional[TicketHolder] = result.scalars().first()
    return first


async def is_holder(db: AsyncSession, event_id: int, identity: str) -> bool:
    return await get_holder(db, event_id, identity) is not None


async def count_holders(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.count(TicketHolder.id)).filter(TicketHolder.event_id == event_id)
    )
    return int(result.scalar_one())


async def get_holders(db: AsyncSession, event_id: int) -> list[str]:
    result = await db.execute(
        select(TicketHolder.holder)
        .filter(TicketHolder.event_id == event_id)
        .order_by(TicketHolder.id)
    )
    return list(result.scalars().all())


async def add_holder(db: AsyncSession, event_id: int, identity: str) -> TicketHolder:
    holder = TicketHolder(event_id=event_id, holder=identity)
    db.add(holder)
    await db.flush()
    return holder


async def remove_holder(db: AsyncSession, event_id: int, identity: str) -> bool:
    result = await db.execute(
        delete(TicketHolder).where(
            TicketHolder.event_id == event_id, TicketHolder.holder == identity
        )
    )
    return bool(result.rowcount)


async def get_held_event_names(db: AsyncSession, identity: str) -> list[str]:
    """Names of the events the identity holds a ticket for, in creation order"""
    result = await db.execute(
        select(Event.name)
        .join(TicketHolder, TicketHolder.event_id == Event.id)
        .filter(TicketHolder.holder == identity)
        .order_by(Event.id)
    )
    return list(result.scalars().all())
