from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.models.registry_state import REGISTRY_STATE_ID, RegistryState


async def get_state(
    db: AsyncSession, *, for_update: bool = False
) -> Optional[RegistryState]:
    query = select(RegistryState).filter(RegistryState.id == REGISTRY_STATE_ID)
    if for_update:
        # Serialises registry mutations across processes on PostgreSQL
        query = query.with_for_update()
    result = await db.execute(query)
    first: Optional[RegistryState] = result.scalars().first()
    return first


async def create_state(db: AsyncSession, *, owner: str) -> RegistryState:
    state = RegistryState(id=REGISTRY_STATE_ID, owner=owner, balance=0)
    db.add(state)
    await db.flush()
    return state
