from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    sub: Optional[str] = Field(None, min_length=1, max_length=128)
