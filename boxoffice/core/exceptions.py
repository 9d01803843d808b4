"""
Registry failures.

Every failure is a violated precondition of the operation that raised it. The
operation is aborted as a whole, so none of these leave partial state behind.
"""

from typing import Any, Dict

from fastapi import status


class RegistryError(Exception):
    """Base class for all registry failures"""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def error(self) -> str:
        return self.__class__.__name__

    def data(self) -> Dict[str, Any]:
        """Structured data describing the violated precondition"""
        return {}

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.data()}


class ExistingEvent(RegistryError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, name: str) -> None:
        super().__init__(f"Event '{name}' already exists")
        self.name = name

    def data(self) -> Dict[str, Any]:
        return {"name": self.name}


class EventNotFound(RegistryError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"Event '{name}' not found")
        self.name = name

    def data(self) -> Dict[str, Any]:
        return {"name": self.name}


class AlreadyOwner(RegistryError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, identity: str) -> None:
        super().__init__(f"'{identity}' already holds a ticket for this event")
        self.identity = identity

    def data(self) -> Dict[str, Any]:
        return {"identity": self.identity}


class AllTicketsSold(RegistryError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, max_tickets: int) -> None:
        super().__init__(f"All {max_tickets} tickets are sold")
        self.max_tickets = max_tickets

    def data(self) -> Dict[str, Any]:
        return {"max_tickets": self.max_tickets}


class TicketPriceNotCovered(RegistryError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, price: int) -> None:
        super().__init__(f"Payment does not cover the ticket price of {price}")
        self.price = price

    def data(self) -> Dict[str, Any]:
        return {"price": self.price}


class NotOwner(RegistryError):
    """Raised for privileged calls by a non-owner and resales by a non-holder"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, identity: str) -> None:
        super().__init__(f"'{identity}' is not the owner")
        self.identity = identity

    def data(self) -> Dict[str, Any]:
        return {"identity": self.identity}


class PaymentDeclined(RegistryError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, identity: str, amount: int) -> None:
        super().__init__(f"Payment of {amount} by '{identity}' was declined")
        self.identity = identity
        self.amount = amount

    def data(self) -> Dict[str, Any]:
        return {"identity": self.identity, "amount": self.amount}


class TransferFailed(RegistryError):
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, identity: str, amount: int) -> None:
        super().__init__(f"Transfer of {amount} to '{identity}' failed")
        self.identity = identity
        self.amount = amount

    def data(self) -> Dict[str, Any]:
        return {"identity": self.identity, "amount": self.amount}


class BalanceLimitExceeded(RegistryError):
    """Raised when a purchase would push the balance past what can be stored"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, limit: int) -> None:
        super().__init__(f"Payment would push the balance past {limit}")
        self.limit = limit

    def data(self) -> Dict[str, Any]:
        return {"limit": self.limit}
