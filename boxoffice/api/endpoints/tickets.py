from typing import List

from fastapi import APIRouter, Depends

from boxoffice.api import deps
from boxoffice.services.registry import EventRegistry

router = APIRouter()


@router.get("/", response_model=List[str], summary="List Held Tickets")  # type: ignore[misc]
async def read_held_events(
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> List[str]:
    """
    Names of the events the caller holds a ticket for, in creation order.
    """
    return await registry.list_held_events(identity)
