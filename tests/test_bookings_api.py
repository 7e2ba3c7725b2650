from datetime import date, timedelta
from decimal import Decimal

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import PROJECT, auth, signup


@pytest.fixture
def parties(client):
    developer = signup(client, "dev@example.com", "developer", "Dana Developer")
    customer = signup(client, "cust@example.com", "customer", "Casey Customer")
    res = client.patch(
        "/api/v1/developers/me",
        json={"hourly_rate": "150.00", "wallet_address": "0xdeveloperwallet"},
        headers=auth(developer),
    )
    assert res.status_code == 200
    return {"developer": developer, "customer": customer, "developer_id": res.json()["id"]}


def booking_body(developer_id, days_ahead=2, **overrides):
    body = {
        "developer_id": developer_id,
        "booking_date": (date.today() + timedelta(days=days_ahead)).isoformat(),
        "hour": 2,
        "minute": 30,
        "period": "PM",
        "duration": "2",
        "project_details": dict(PROJECT),
    }
    body.update(overrides)
    return body


def create(client, parties, **overrides):
    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"], **overrides),
        headers=auth(parties["customer"]),
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_create_booking(client, parties):
    booking = create(client, parties)
    assert Decimal(booking["amount"]) == Decimal("300")
    assert booking["status"] == "upcoming"
    assert booking["payment_status"] == "pending"
    assert booking["call_status"] is None
    assert booking["call_link"].startswith("https://meet.devcall.com/")
    assert booking["developer_name"] == "Dana Developer"
    assert booking["warnings"] == []


def test_create_booking_in_the_past(client, parties):
    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"], days_ahead=-1),
        headers=auth(parties["customer"]),
    )
    assert res.status_code == 422
    assert res.json() == {
        "detail": "Please select a future date and time for the booking.",
        "code": "past_time",
    }
    listed = client.get("/api/v1/bookings?role=customer", headers=auth(parties["customer"])).json()
    assert listed["total"] == 0


def test_create_booking_validation_errors(client, parties):
    details = dict(PROJECT, goals="")
    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"], project_details=details),
        headers=auth(parties["customer"]),
    )
    assert res.status_code == 422
    assert res.json()["code"] == "missing_field"

    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"], duration="4.5"),
        headers=auth(parties["customer"]),
    )
    assert res.json()["code"] == "invalid_duration"

    details = dict(PROJECT, meet_link="not a link")
    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"], project_details=details),
        headers=auth(parties["customer"]),
    )
    assert res.json()["code"] == "invalid_meeting_link"


def test_developer_cannot_book_without_customer_role(client, parties):
    res = client.post(
        "/api/v1/bookings",
        json=booking_body(parties["developer_id"]),
        headers=auth(parties["developer"]),
    )
    assert res.status_code == 403


def test_full_lifecycle(client, parties):
    booking = create(client, parties)
    booking_id = booking["id"]

    res = client.post(
        f"/api/v1/bookings/{booking_id}/call-outcome",
        json={"outcome": "completed"},
        headers=auth(parties["developer"]),
    )
    assert res.status_code == 200
    assert res.json()["call_status"] == "completed"
    assert res.json()["payment_status"] == "pending_payment"

    res = client.post(
        f"/api/v1/bookings/{booking_id}/confirm-payment",
        json={"transaction_hash": "0xabc"},
        headers=auth(parties["customer"]),
    )
    assert res.status_code == 200
    paid = res.json()
    assert paid["payment_status"] == "paid"
    assert paid["status"] == "completed"
    assert paid["payment_validated"] is True
    assert paid["transaction_hash"] == "0xabc"
    assert paid["validation_attempts"] == 1
    assert Decimal(paid["amount"]) == Decimal("300")

    res = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(parties["customer"]))
    assert res.status_code == 409
    assert res.json()["code"] == "illegal_transition"


def test_cancel_then_cancel_again(client, parties):
    booking = create(client, parties)
    res = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth(parties["developer"]))
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"
    assert res.json()["payment_status"] == "cancelled"

    res = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth(parties["customer"]))
    assert res.status_code == 409


def test_blank_transaction_hash(client, parties):
    booking = create(client, parties)
    res = client.post(
        f"/api/v1/bookings/{booking['id']}/confirm-payment",
        json={"transaction_hash": "  "},
        headers=auth(parties["customer"]),
    )
    assert res.status_code == 422
    assert res.json()["code"] == "missing_field"


def test_bookings_are_private_to_parties(client, parties):
    booking = create(client, parties)
    outsider = signup(client, "other@example.com", "customer")
    res = client.get(f"/api/v1/bookings/{booking['id']}", headers=auth(outsider))
    assert res.status_code == 403
    res = client.get(f"/api/v1/bookings/{booking['id']}", headers=auth(parties["developer"]))
    assert res.status_code == 200
    assert res.json()["customer_name"] == "Casey Customer"


def test_list_bookings_by_role(client, parties):
    later = create(client, parties, days_ahead=5)
    sooner = create(client, parties, days_ahead=2)

    res = client.get("/api/v1/bookings", headers=auth(parties["developer"]))
    assert res.status_code == 200
    assert [b["id"] for b in res.json()["bookings"]] == [sooner["id"], later["id"]]

    res = client.get("/api/v1/bookings?role=customer", headers=auth(parties["customer"]))
    assert res.json()["total"] == 2

    res = client.get("/api/v1/bookings?role=developer", headers=auth(parties["customer"]))
    assert res.status_code == 403


def test_notification_failure_does_not_block_booking(tmp_path):
    from fastapi.testclient import TestClient

    from app.main import create_application
    from conftest import make_settings

    # Nothing listens on this port; the notice fails but the booking stands
    settings = make_settings(
        tmp_path / "notify.db",
        email_function_url="http://127.0.0.1:9/send-booking-email",
        email_timeout_seconds=1,
    )
    with TestClient(create_application(settings)) as client:
        developer = signup(client, "dev@example.com", "developer", "Dana Developer")
        customer = signup(client, "cust@example.com", "customer")
        developer_id = client.patch(
            "/api/v1/developers/me", json={"hourly_rate": "100.00"}, headers=auth(developer)
        ).json()["id"]
        res = client.post(
            "/api/v1/bookings", json=booking_body(developer_id, duration="1"), headers=auth(customer)
        )
        assert res.status_code == 201
        assert res.json()["warnings"] == ["Booking notification could not be delivered"]
        listed = client.get("/api/v1/bookings", headers=auth(customer)).json()
        assert listed["total"] == 1


def test_websocket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/realtime/bookings") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4401


def test_websocket_customer_cannot_watch_developer_channel(client, parties):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/v1/realtime/bookings?token={parties['customer']}") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4403


def test_websocket_streams_new_bookings_and_cancellations(client, parties):
    developer_token = parties["developer"]
    with client.websocket_connect(f"/api/v1/realtime/bookings?token={developer_token}") as new_ws:
        booking = create(client, parties)
        message = new_ws.receive_json()
        assert message["channel"] == "bookings"
        assert message["event"] == "INSERT"
        assert message["payload"]["id"] == booking["id"]
        assert message["payload"]["status"] == "upcoming"

    customer_token = parties["customer"]
    with client.websocket_connect(
        f"/api/v1/realtime/booking-cancellations?token={customer_token}"
    ) as cancel_ws:
        client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth(developer_token))
        message = cancel_ws.receive_json()
        assert message["payload"]["id"] == booking["id"]
        assert message["payload"]["status"] == "cancelled"


def test_websocket_call_failures(client, parties):
    booking = create(client, parties)
    with client.websocket_connect(f"/api/v1/realtime/call-failures?token={parties['developer']}") as ws:
        client.post(
            f"/api/v1/bookings/{booking['id']}/call-outcome",
            json={"outcome": "failed"},
            headers=auth(parties["customer"]),
        )
        message = ws.receive_json()
        assert message["payload"]["id"] == booking["id"]
        assert message["payload"]["customer_name"] == "Casey Customer"
        assert message["payload"]["project_title"] == "API review"
