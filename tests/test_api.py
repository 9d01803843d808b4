from datetime import timedelta
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from boxoffice.core.security import create_access_token
from boxoffice.core.settings import get_settings

settings = get_settings()
API = settings.API_V1_PREFIX

OWNER = "0xOwner"
ALICE = "0xA11ce"
BOB = "0xB0b"
CAROL = "0xCa201"

Headers = Callable[[str], Dict[str, str]]


def create_event(
    client: TestClient,
    headers: Dict[str, str],
    name: str,
    date: int = 1000,
    price: int = 20,
    max_tickets: int = 1500,
) -> Any:
    return client.post(
        f"{API}/events/",
        json={"name": name, "date": date, "price": price, "max_tickets": max_tickets},
        headers=headers,
    )


def test_root_and_health(client: TestClient) -> None:
    assert client.get("/").json()["status"] == "operational"

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] is True


def test_metrics_endpoint(client: TestClient, auth_headers: Headers) -> None:
    create_event(client, auth_headers(OWNER), "Metered")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "events_created_total" in response.text
    assert "http_requests_total" in response.text


def test_responses_carry_request_id(client: TestClient) -> None:
    response = client.get(f"{API}/events/")

    assert response.headers["X-Request-ID"]
    assert response.headers["X-Response-Time"].endswith("s")


class TestAuthentication:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.post(f"{API}/registry/withdraw")

        assert response.status_code == 401

    def test_garbage_token(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/registry/withdraw", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 403
        assert response.json() == {"detail": "Could not validate credentials"}

    def test_expired_token(self, client: TestClient) -> None:
        token = create_access_token(OWNER, expires_delta=timedelta(seconds=-10))

        response = client.post(
            f"{API}/registry/withdraw", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 403

    def test_token_signed_with_other_key(self, client: TestClient) -> None:
        from jose import jwt

        token = jwt.encode({"sub": OWNER}, "some-other-key", algorithm="HS256")

        response = client.post(
            f"{API}/registry/withdraw", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 403

    def test_read_only_endpoints_are_public(self, client: TestClient) -> None:
        assert client.get(f"{API}/events/").status_code == 200
        assert client.get(f"{API}/registry/").status_code == 200


class TestEvents:
    def test_create_and_list(self, client: TestClient, auth_headers: Headers) -> None:
        assert client.get(f"{API}/events/").json() == []

        response = create_event(client, auth_headers(OWNER), "Megadeth/Movistar Arena")

        assert response.status_code == 201
        assert response.json() == {"success": True}
        assert client.get(f"{API}/events/").json() == ["Megadeth/Movistar Arena"]

    def test_info_for_name_with_slash(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        create_event(
            client, auth_headers(OWNER), "Fear Factory/Vorterix", date=1700000000
        )

        response = client.get(f"{API}/events/Fear Factory/Vorterix")

        assert response.status_code == 200
        assert response.json() == {
            "name": "Fear Factory/Vorterix",
            "date": 1700000000,
            "price": 20,
            "max_tickets": 1500,
            "tickets_left": 1500,
        }

    def test_unknown_event(self, client: TestClient) -> None:
        response = client.get(f"{API}/events/Nobody")

        assert response.status_code == 404
        assert response.json()["detail"] == {
            "error": "EventNotFound",
            "message": "Event 'Nobody' not found",
            "name": "Nobody",
        }

    def test_non_owner_cannot_create(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        response = create_event(client, auth_headers(ALICE), "Carcass/Teatro Flores")

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "NotOwner"
        assert response.json()["detail"]["identity"] == ALICE
        assert client.get(f"{API}/events/").json() == []

    def test_duplicate_event(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Clutch/Uniclub")

        response = create_event(client, auth_headers(OWNER), "Clutch/Uniclub")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ExistingEvent"
        assert response.json()["detail"]["name"] == "Clutch/Uniclub"

    @pytest.mark.parametrize(  # type: ignore[misc]
        "payload",
        [
            {"name": "", "date": 1, "price": 1, "max_tickets": 1},
            {"name": "Bad", "date": 1, "price": -1, "max_tickets": 1},
            {"name": "Bad", "date": 1, "price": 1, "max_tickets": -1},
            {"name": "Bad", "price": 1, "max_tickets": 1},
            {"name": "Bad", "date": 1, "price": 2**63, "max_tickets": 1},
            {"name": "Bad", "date": 1, "price": 10**20, "max_tickets": 1},
            {"name": "Bad", "date": 1, "price": 1, "max_tickets": 2**63},
            {"name": "Bad", "date": 2**63, "price": 1, "max_tickets": 1},
        ],
    )
    def test_invalid_event_data(
        self, client: TestClient, auth_headers: Headers, payload: Dict[str, Any]
    ) -> None:
        response = client.post(
            f"{API}/events/", json=payload, headers=auth_headers(OWNER)
        )

        assert response.status_code == 422


class TestTickets:
    def test_buy_and_check_holding(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        create_event(client, auth_headers(OWNER), "SoulFly/Teatro Colegiales")

        response = client.post(
            f"{API}/events/SoulFly/Teatro Colegiales/tickets",
            json={"payment": 20},
            headers=auth_headers(ALICE),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        mine = client.get(
            f"{API}/events/SoulFly/Teatro Colegiales/tickets/mine",
            headers=auth_headers(ALICE),
        )
        assert mine.json() == {"name": "SoulFly/Teatro Colegiales", "holder": True}
        theirs = client.get(
            f"{API}/events/SoulFly/Teatro Colegiales/tickets/mine",
            headers=auth_headers(OWNER),
        )
        assert theirs.json()["holder"] is False

    def test_price_not_covered(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Prong/Uniclub")

        response = client.post(
            f"{API}/events/Prong/Uniclub/tickets",
            json={"payment": 19},
            headers=auth_headers(BOB),
        )

        assert response.status_code == 402
        assert response.json()["detail"]["error"] == "TicketPriceNotCovered"
        assert response.json()["detail"]["price"] == 20

    def test_already_owner(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Pantera/Obras Sanitarias")
        url = f"{API}/events/Pantera/Obras Sanitarias/tickets"
        client.post(url, json={"payment": 20}, headers=auth_headers(OWNER))

        response = client.post(url, json={"payment": 20}, headers=auth_headers(OWNER))

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "AlreadyOwner"
        assert response.json()["detail"]["identity"] == OWNER

    def test_negative_payment_is_invalid(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        create_event(client, auth_headers(OWNER), "Prong/Uniclub")

        response = client.post(
            f"{API}/events/Prong/Uniclub/tickets",
            json={"payment": -5},
            headers=auth_headers(BOB),
        )

        assert response.status_code == 422

    def test_payment_past_storage_limit_is_invalid(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        create_event(client, auth_headers(OWNER), "Prong/Uniclub")

        response = client.post(
            f"{API}/events/Prong/Uniclub/tickets",
            json={"payment": 2**63},
            headers=auth_headers(BOB),
        )

        assert response.status_code == 422

    def test_balance_limit(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Prong/Uniclub", price=10)
        url = f"{API}/events/Prong/Uniclub/tickets"
        first = client.post(url, json={"payment": 2**63 - 1}, headers=auth_headers(ALICE))
        assert first.status_code == 200

        response = client.post(url, json={"payment": 10}, headers=auth_headers(BOB))

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "BalanceLimitExceeded"
        assert client.get(f"{API}/registry/").json()["balance"] == 2**63 - 1

    def test_buy_requires_token(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Prong/Uniclub")

        response = client.post(f"{API}/events/Prong/Uniclub/tickets", json={"payment": 20})

        assert response.status_code == 401

    def test_held_events(self, client: TestClient, auth_headers: Headers) -> None:
        names = [
            "Limp Bizkit/Obras Sanitarias",
            "Limp Bizkit/Luna Park",
            "Limp Bizkit/Movistar Arena",
        ]
        for name in names:
            create_event(client, auth_headers(OWNER), name)
            client.post(
                f"{API}/events/{name}/tickets",
                json={"payment": 20},
                headers=auth_headers(OWNER),
            )

        assert client.get(f"{API}/tickets/", headers=auth_headers(OWNER)).json() == names
        assert client.get(f"{API}/tickets/", headers=auth_headers(ALICE)).json() == []

    def test_resell(self, client: TestClient, auth_headers: Headers) -> None:
        name = "Machine Head/Teatro Flores"
        create_event(client, auth_headers(OWNER), name)
        client.post(
            f"{API}/events/{name}/tickets",
            json={"payment": 20},
            headers=auth_headers(ALICE),
        )

        response = client.post(
            f"{API}/events/{name}/tickets/resell",
            json={"recipient": BOB},
            headers=auth_headers(ALICE),
        )

        assert response.status_code == 200
        assert client.get(f"{API}/tickets/", headers=auth_headers(ALICE)).json() == []
        assert client.get(f"{API}/tickets/", headers=auth_headers(BOB)).json() == [name]

    def test_resell_by_non_holder(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        name = "Suicidal Tendencies/Teatro Flores"
        create_event(client, auth_headers(OWNER), name)
        client.post(
            f"{API}/events/{name}/tickets",
            json={"payment": 20},
            headers=auth_headers(ALICE),
        )

        response = client.post(
            f"{API}/events/{name}/tickets/resell",
            json={"recipient": ALICE},
            headers=auth_headers(BOB),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "NotOwner"
        assert response.json()["detail"]["identity"] == BOB


class TestScenario:
    def test_concert(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(
            client, auth_headers(OWNER), "Concert", date=1000, price=20, max_tickets=2
        )
        assert client.get(f"{API}/events/").json() == ["Concert"]

        buy = f"{API}/events/Concert/tickets"
        assert client.post(buy, json={"payment": 20}, headers=auth_headers(ALICE)).status_code == 200
        assert client.get(f"{API}/events/Concert").json()["tickets_left"] == 1
        assert client.post(buy, json={"payment": 20}, headers=auth_headers(BOB)).status_code == 200
        assert client.get(f"{API}/events/Concert").json()["tickets_left"] == 0

        sold_out = client.post(buy, json={"payment": 20}, headers=auth_headers(CAROL))
        assert sold_out.status_code == 409
        assert sold_out.json()["detail"]["error"] == "AllTicketsSold"
        assert sold_out.json()["detail"]["max_tickets"] == 2

        resell = f"{API}/events/Concert/tickets/resell"
        first = client.post(resell, json={"recipient": CAROL}, headers=auth_headers(ALICE))
        assert first.status_code == 200
        again = client.post(resell, json={"recipient": CAROL}, headers=auth_headers(ALICE))
        assert again.status_code == 403
        assert again.json()["detail"]["identity"] == ALICE

    def test_withdraw(self, client: TestClient, auth_headers: Headers) -> None:
        create_event(client, auth_headers(OWNER), "Concert", price=20)
        client.post(
            f"{API}/events/Concert/tickets",
            json={"payment": 30},
            headers=auth_headers(ALICE),
        )
        assert client.get(f"{API}/registry/").json() == {
            "owner": OWNER,
            "balance": 30,
            "event_count": 1,
        }

        denied = client.post(f"{API}/registry/withdraw", headers=auth_headers(ALICE))
        assert denied.status_code == 403
        assert denied.json()["detail"]["error"] == "NotOwner"

        response = client.post(f"{API}/registry/withdraw", headers=auth_headers(OWNER))
        assert response.status_code == 200
        assert response.json() == {"success": True, "amount": 30}
        assert client.get(f"{API}/registry/").json()["balance"] == 0


def test_each_client_starts_with_empty_registry(client: TestClient) -> None:
    assert client.get(f"{API}/events/").json() == []
    assert client.get(f"{API}/registry/").json()["owner"] == OWNER
