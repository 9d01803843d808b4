"""
Payment collaborator used by the registry to move money.

The registry never holds funds itself: purchases are charged through a
gateway and withdrawals are paid out through it. Only an in-process ledger is
shipped; a real provider implements the same three coroutines.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Set

from boxoffice.core.settings import get_settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised by a gateway when money could not be moved"""


@dataclass(frozen=True)
class PaymentRecord:
    kind: str  # "charge", "refund" or "payout"
    identity: str
    amount: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PaymentGateway(ABC):
    @abstractmethod
    async def charge(self, identity: str, amount: int) -> None:
        """Collect `amount` from `identity`."""

    @abstractmethod
    async def refund(self, identity: str, amount: int) -> None:
        """Return a previously collected `amount` to `identity`."""

    @abstractmethod
    async def payout(self, identity: str, amount: int) -> None:
        """Transfer `amount` held by the registry to `identity`."""


class LocalPaymentGateway(PaymentGateway):
    """In-process ledger recording every money movement"""

    def __init__(self) -> None:
        self.records: List[PaymentRecord] = []
        self.declined: Set[str] = set()
        self.refusing: Set[str] = set()

    def decline_charges_from(self, identity: str) -> None:
        self.declined.add(identity)

    def refuse_payouts_to(self, identity: str) -> None:
        self.refusing.add(identity)

    async def charge(self, identity: str, amount: int) -> None:
        if identity in self.declined:
            raise PaymentError(f"Charge of {amount} declined for {identity}")
        self._record("charge", identity, amount)

    async def refund(self, identity: str, amount: int) -> None:
        self._record("refund", identity, amount)

    async def payout(self, identity: str, amount: int) -> None:
        if identity in self.refusing:
            raise PaymentError(f"{identity} refused a payout of {amount}")
        self._record("payout", identity, amount)

    def total(self, kind: str) -> int:
        return sum(r.amount for r in self.records if r.kind == kind)

    def _record(self, kind: str, identity: str, amount: int) -> None:
        self.records.append(PaymentRecord(kind=kind, identity=identity, amount=amount))
        logger.debug("Payment %s of %s for %s recorded", kind, amount, identity)


def build_payment_gateway() -> PaymentGateway:
    """Build the gateway selected by REGISTRY_PAYMENTS_PROVIDER"""
    provider = get_settings().registry.PAYMENTS_PROVIDER
    if provider == "local":
        return LocalPaymentGateway()
    raise ValueError(f"Unknown payments provider: {provider}")
