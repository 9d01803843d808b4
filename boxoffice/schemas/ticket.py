from pydantic import BaseModel, Field

from boxoffice.core.db_utils import BIGINT_MAX


class TicketPurchase(BaseModel):
    payment: int = Field(
        ..., ge=0, le=BIGINT_MAX, description="Amount attached to the purchase."
    )


class TicketResale(BaseModel):
    recipient: str = Field(..., min_length=1, max_length=128)


class TicketHolding(BaseModel):
    name: str
    holder: bool
