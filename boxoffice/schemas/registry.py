from pydantic import BaseModel


class OperationResult(BaseModel):
    success: bool = True


class WithdrawalResult(OperationResult):
    amount: int


class RegistryInfo(BaseModel):
    owner: str
    balance: int
    event_count: int
