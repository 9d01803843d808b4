from pydantic import BaseModel, ConfigDict, Field

from boxoffice.core.db_utils import BIGINT_MAX


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    date: int = Field(
        ...,
        ge=-BIGINT_MAX - 1,
        le=BIGINT_MAX,
        description="Event timestamp (seconds since epoch).",
    )
    price: int = Field(
        ..., ge=0, le=BIGINT_MAX, description="Ticket price in the smallest currency unit."
    )
    max_tickets: int = Field(
        ..., ge=0, le=BIGINT_MAX, description="Capacity must be non-negative."
    )


class EventInfo(BaseModel):
    name: str
    date: int
    price: int
    max_tickets: int
    tickets_left: int

    model_config = ConfigDict(from_attributes=True)
