from typing import List

from fastapi import APIRouter, Depends, status

from boxoffice.api import deps
from boxoffice.schemas.event import EventCreate, EventInfo
from boxoffice.schemas.registry import OperationResult
from boxoffice.schemas.ticket import TicketHolding, TicketPurchase, TicketResale
from boxoffice.services.registry import EventRegistry

router = APIRouter()

# Event names may contain "/", so {name:path} is used throughout. The suffix
# routes must stay registered before the plain GET /{name:path} route.


@router.post(
    "/",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create New Event",
)  # type: ignore[misc]
async def create_event(
    *,
    event_in: EventCreate,
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> OperationResult:
    """
    **Create New Event** (Registry Owner Only)

    **Request Body:**
    - `name` (string): Event name, also the source of its key
    - `date` (integer): Event timestamp
    - `price` (integer): Ticket price in the smallest currency unit
    - `max_tickets` (integer): Capacity

    **Example Request:**
    ```json
    {
        "name": "Megadeth/Movistar Arena",
        "date": 1735689600,
        "price": 20000000000000000,
        "max_tickets": 1500
    }
    ```

    **Errors:**
    - `403`: Caller is not the registry owner (`NotOwner`)
    - `409`: An event with this name already exists (`ExistingEvent`)
    - `422`: Invalid event data
    """
    await registry.create_event(identity, event_in)
    return OperationResult()


@router.get("/", response_model=List[str], summary="List Events")  # type: ignore[misc]
async def read_events(
    registry: EventRegistry = Depends(deps.get_event_registry),
) -> List[str]:
    """
    **List Event Names**

    Names of every registered event in creation order. Empty when none exist.
    """
    return await registry.list_events()


@router.post(
    "/{name:path}/tickets", response_model=OperationResult, summary="Buy Ticket"
)  # type: ignore[misc]
async def buy_ticket(
    *,
    name: str,
    purchase_in: TicketPurchase,
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> OperationResult:
    """
    **Buy a Ticket**

    Registers the caller as a holder of the event. The attached `payment` must
    cover the ticket price; the full amount is kept, overpayment included.

    **Errors** (checked in this order):
    - `404`: Event not found (`EventNotFound`)
    - `409`: Caller already holds a ticket (`AlreadyOwner`)
    - `409`: Capacity reached (`AllTicketsSold`)
    - `402`: Payment below the ticket price (`TicketPriceNotCovered`)
    - `409`: The balance cannot hold the payment (`BalanceLimitExceeded`)
    - `402`: Payment declined by the payment provider (`PaymentDeclined`)
    """
    await registry.buy_ticket(identity, name, purchase_in.payment)
    return OperationResult()


@router.get(
    "/{name:path}/tickets/mine",
    response_model=TicketHolding,
    summary="Check Ticket Ownership",
)  # type: ignore[misc]
async def read_ticket_holding(
    *,
    name: str,
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> TicketHolding:
    """
    Whether the caller currently holds a ticket for the event.
    """
    holder = await registry.is_ticket_holder(identity, name)
    return TicketHolding(name=name, holder=holder)


@router.post(
    "/{name:path}/tickets/resell",
    response_model=OperationResult,
    summary="Resell Ticket",
)  # type: ignore[misc]
async def resell_ticket(
    *,
    name: str,
    resale_in: TicketResale,
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> OperationResult:
    """
    **Hand a Ticket Over**

    Moves the caller's ticket to `recipient`. No money changes hands.

    **Errors** (checked in this order):
    - `404`: Event not found (`EventNotFound`)
    - `403`: Caller holds no ticket for the event (`NotOwner`)
    - `409`: Recipient already holds a ticket (`AlreadyOwner`)
    """
    await registry.resell_ticket(identity, name, resale_in.recipient)
    return OperationResult()


@router.get("/{name:path}", response_model=EventInfo, summary="Get Event Details")  # type: ignore[misc]
async def read_event(
    *,
    name: str,
    registry: EventRegistry = Depends(deps.get_event_registry),
) -> EventInfo:
    """
    **Get Event by Name**

    Returns name, date, price, capacity and the number of tickets left.

    **Errors:**
    - `404`: Event not found (`EventNotFound`)
    """
    return await registry.get_event_info(name)
