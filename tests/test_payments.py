import pytest

from boxoffice.core.settings import get_settings
from boxoffice.services import payments
from boxoffice.services.payments import (
    LocalPaymentGateway,
    PaymentError,
    build_payment_gateway,
)


async def test_local_gateway_records_movements() -> None:
    gateway = LocalPaymentGateway()

    await gateway.charge("0xA11ce", 30)
    await gateway.charge("0xB0b", 20)
    await gateway.refund("0xB0b", 20)
    await gateway.payout("0xOwner", 30)

    assert [r.kind for r in gateway.records] == ["charge", "charge", "refund", "payout"]
    assert gateway.total("charge") == 50
    assert gateway.total("refund") == 20
    assert gateway.total("payout") == 30


async def test_declined_charge_is_not_recorded() -> None:
    gateway = LocalPaymentGateway()
    gateway.decline_charges_from("0xA11ce")

    with pytest.raises(PaymentError):
        await gateway.charge("0xA11ce", 30)

    assert gateway.records == []


async def test_refused_payout_is_not_recorded() -> None:
    gateway = LocalPaymentGateway()
    gateway.refuse_payouts_to("0xOwner")

    with pytest.raises(PaymentError):
        await gateway.payout("0xOwner", 30)

    assert gateway.total("payout") == 0


def test_build_local_gateway() -> None:
    assert isinstance(build_payment_gateway(), LocalPaymentGateway)


def test_build_unknown_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    registry_settings = get_settings().registry.model_copy(
        update={"PAYMENTS_PROVIDER": "stripe"}
    )
    fake = get_settings().model_copy(update={"registry": registry_settings})
    monkeypatch.setattr(payments, "get_settings", lambda: fake)

    with pytest.raises(ValueError, match="stripe"):
        build_payment_gateway()
