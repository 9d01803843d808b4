from fastapi import APIRouter, Depends

from boxoffice.api import deps
from boxoffice.schemas.registry import RegistryInfo, WithdrawalResult
from boxoffice.services.registry import EventRegistry

router = APIRouter()


@router.get("/", response_model=RegistryInfo, summary="Get Registry Details")  # type: ignore[misc]
async def read_registry(
    registry: EventRegistry = Depends(deps.get_event_registry),
) -> RegistryInfo:
    """
    Owner identity, accumulated balance and number of events.
    """
    return await registry.get_registry_info()


@router.post("/withdraw", response_model=WithdrawalResult, summary="Withdraw Funds")  # type: ignore[misc]
async def withdraw_funds(
    registry: EventRegistry = Depends(deps.get_event_registry),
    identity: str = Depends(deps.get_current_identity),
) -> WithdrawalResult:
    """
    **Withdraw Funds** (Registry Owner Only)

    Pays the whole accumulated balance out to the owner; the balance becomes
    zero.

    **Errors:**
    - `403`: Caller is not the registry owner (`NotOwner`)
    - `502`: The payout was refused (`TransferFailed`); the balance is kept
    """
    amount = await registry.withdraw_funds(identity)
    return WithdrawalResult(amount=amount)
