"""
Event registry: the catalog of events and the holders of their tickets.

Every operation runs under one lock and inside one database transaction, so a
check-then-act sequence such as "not a holder yet, then add the holder" can
never interleave with another operation, and a failed operation leaves no
trace. Mutations also lock the registry_state row so that several worker
processes sharing one PostgreSQL database are serialised as well.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boxoffice.core.db_utils import BIGINT_MAX, db_transaction
from boxoffice.core.exceptions import (
    AllTicketsSold,
    AlreadyOwner,
    BalanceLimitExceeded,
    EventNotFound,
    ExistingEvent,
    NotOwner,
    PaymentDeclined,
    RegistryError,
    TicketPriceNotCovered,
    TransferFailed,
)
from boxoffice.crud import event as event_crud
from boxoffice.crud import registry_state as registry_state_crud
from boxoffice.crud import ticket as ticket_crud
from boxoffice.middleware.monitoring import metrics
from boxoffice.models.event import Event
from boxoffice.models.registry_state import RegistryState
from boxoffice.schemas.event import EventCreate, EventInfo
from boxoffice.schemas.registry import RegistryInfo
from boxoffice.services.payments import PaymentError, PaymentGateway

logger = logging.getLogger(__name__)


class EventRegistry:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        owner: str,
        payments: PaymentGateway,
    ) -> None:
        self._session_factory = session_factory
        self._configured_owner = owner
        self._payments = payments
        self._lock = asyncio.Lock()

    @property
    def payments(self) -> PaymentGateway:
        return self._payments

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._lock:
            async with self._unlocked_transaction() as db:
                yield db

    @asynccontextmanager
    async def _unlocked_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        # Caller must hold self._lock
        async with self._session_factory() as db:
            try:
                async with db_transaction(db):
                    yield db
            except RegistryError as e:
                self._rejected(e)
                raise

    def _rejected(self, error: RegistryError) -> None:
        metrics.record_registry_error(error.error)
        logger.debug("Registry operation rejected: %s", error.message)

    async def _load_state(
        self, db: AsyncSession, *, for_update: bool = False
    ) -> RegistryState:
        state = await registry_state_crud.get_state(db, for_update=for_update)
        if state is None:
            raise RuntimeError("Registry is not initialized. Call initialize() first.")
        return state

    async def _get_event(self, db: AsyncSession, name: str) -> Event:
        event = await event_crud.get_event_by_name(db, name)
        if event is None:
            raise EventNotFound(name)
        return event

    async def _require_owner(self, db: AsyncSession, caller: str) -> RegistryState:
        state = await self._load_state(db, for_update=True)
        if caller != state.owner:
            raise NotOwner(caller)
        return state

    async def initialize(self) -> str:
        """
        Write the registry_state row on first start and return the owner.

        The owner is fixed by the first initialisation; a different configured
        owner on a later start is ignored with a warning.
        """
        async with self._transaction() as db:
            state = await registry_state_crud.get_state(db, for_update=True)
            if state is None:
                state = await registry_state_crud.create_state(
                    db, owner=self._configured_owner
                )
                logger.info("Registry created with owner %s", state.owner)
            elif state.owner != self._configured_owner:
                logger.warning(
                    "Configured owner %s ignored; registry is owned by %s",
                    self._configured_owner,
                    state.owner,
                )
            return state.owner

    async def get_owner(self) -> str:
        async with self._transaction() as db:
            state = await self._load_state(db)
            return state.owner

    async def get_registry_info(self) -> RegistryInfo:
        async with self._transaction() as db:
            state = await self._load_state(db)
            return RegistryInfo(
                owner=state.owner,
                balance=state.balance,
                event_count=await event_crud.count_events(db),
            )

    async def create_event(self, caller: str, event_in: EventCreate) -> bool:
        async with self._transaction() as db:
            await self._require_owner(db, caller)
            if await event_crud.get_event_by_name(db, event_in.name) is not None:
                raise ExistingEvent(event_in.name)
            await event_crud.create_event(db, event_in)

        metrics.events_created_total.inc()
        logger.info(
            "Event %s created (date=%s price=%s max_tickets=%s)",
            event_in.name,
            event_in.date,
            event_in.price,
            event_in.max_tickets,
        )
        return True

    async def list_events(self) -> list[str]:
        async with self._transaction() as db:
            return await event_crud.get_event_names(db)

    async def get_event_info(self, name: str) -> EventInfo:
        async with self._transaction() as db:
            event = await self._get_event(db, name)
            holders = await ticket_crud.count_holders(db, event.id)
            return EventInfo(
                name=event.name,
                date=event.date,
                price=event.price,
                max_tickets=event.max_tickets,
                tickets_left=event.max_tickets - holders,
            )

    async def buy_ticket(self, caller: str, name: str, payment: int) -> bool:
        """
        Register `caller` as a holder of `name`.

        Payment is collected only once every precondition passed, and the
        whole amount is kept even when it exceeds the price. If the purchase
        cannot be recorded after the charge went through, the charge is
        refunded before the error propagates.
        """
        if payment < 0 or payment > BIGINT_MAX:
            raise ValueError(f"payment must be between 0 and {BIGINT_MAX}")

        charged = False
        try:
            async with self._transaction() as db:
                state = await self._load_state(db, for_update=True)
                event = await self._get_event(db, name)
                if await ticket_crud.is_holder(db, event.id, caller):
                    raise AlreadyOwner(caller)
                if await ticket_crud.count_holders(db, event.id) >= event.max_tickets:
                    raise AllTicketsSold(event.max_tickets)
                if payment < event.price:
                    raise TicketPriceNotCovered(event.price)
                if state.balance > BIGINT_MAX - payment:
                    raise BalanceLimitExceeded(BIGINT_MAX)

                try:
                    await self._payments.charge(caller, payment)
                except PaymentError as e:
                    raise PaymentDeclined(caller, payment) from e
                charged = True

                await ticket_crud.add_holder(db, event.id, caller)
                state.balance += payment
        except Exception:
            if charged:
                try:
                    await self._payments.refund(caller, payment)
                except Exception:
                    logger.exception(
                        "Refund of %s to %s failed after failed purchase",
                        payment,
                        caller,
                    )
                else:
                    logger.warning(
                        "Refunded %s to %s after failed purchase", payment, caller
                    )
            raise

        metrics.tickets_sold_total.inc()
        logger.info("Ticket for %s sold to %s for %s", name, caller, payment)
        return True

    async def is_ticket_holder(self, caller: str, name: str) -> bool:
        async with self._transaction() as db:
            event = await self._get_event(db, name)
            return await ticket_crud.is_holder(db, event.id, caller)

    async def list_held_events(self, caller: str) -> list[str]:
        async with self._transaction() as db:
            return await ticket_crud.get_held_event_names(db, caller)

    async def resell_ticket(self, caller: str, name: str, recipient: str) -> bool:
        async with self._transaction() as db:
            await self._load_state(db, for_update=True)
            event = await self._get_event(db, name)
            if not await ticket_crud.is_holder(db, event.id, caller):
                raise NotOwner(caller)
            if await ticket_crud.is_holder(db, event.id, recipient):
                raise AlreadyOwner(recipient)

            await ticket_crud.remove_holder(db, event.id, caller)
            await ticket_crud.add_holder(db, event.id, recipient)

        metrics.tickets_resold_total.inc()
        logger.info("Ticket for %s handed from %s to %s", name, caller, recipient)
        return True

    async def withdraw_funds(self, caller: str) -> int:
        """
        Pay the whole balance out to the owner and return the amount.

        The zeroed balance is committed before the payout, so money never
        leaves without the balance recording it. A refused payout puts the
        amount back in a second transaction and raises TransferFailed.
        """
        async with self._lock:
            async with self._unlocked_transaction() as db:
                state = await self._require_owner(db, caller)
                owner, amount = state.owner, state.balance
                state.balance = 0

            try:
                await self._payments.payout(owner, amount)
            except PaymentError as e:
                async with self._unlocked_transaction() as db:
                    state = await self._load_state(db, for_update=True)
                    state.balance += amount
                error = TransferFailed(owner, amount)
                self._rejected(error)
                raise error from e

        metrics.funds_withdrawn_total.inc(amount)
        logger.info("Withdrew %s to %s", amount, caller)
        return amount


_registry: Optional[EventRegistry] = None


async def init_registry(
    session_factory: async_sessionmaker[AsyncSession],
    owner: str,
    payments: PaymentGateway,
) -> EventRegistry:
    """
    Initialize the process-wide registry. Call on FastAPI startup.
    """
    global _registry
    registry = EventRegistry(session_factory, owner=owner, payments=payments)
    await registry.initialize()
    _registry = registry
    return registry


def close_registry() -> None:
    global _registry
    _registry = None


def get_registry() -> EventRegistry:
    """
    Return the initialized registry or raise.
    """
    if _registry is None:
        raise RuntimeError("Registry is not initialized. Call init_registry on startup.")
    return _registry
