# tests/integration/test_booking_flow.py

from table_booking.domain.principal import Role


def test_booking_flow(client, auth_headers):
    user = auth_headers("u1")
    other = auth_headers("u2")
    admin = auth_headers("admin", Role.ADMIN)

    events = client.get("/events")
    assert events.status_code == 200
    assert [e["id"] for e in events.json()] == ["evt-1"]
    assert events.json()[0]["maxSeatsPerBooking"] == 4

    response = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["A1", "A2"]},
        headers=user,
    )
    assert response.status_code == 201
    booking = response.json()["booking"]
    assert booking["status"] == "reserved"
    assert booking["totalPrice"] == 250
    assert booking["seatIds"] == ["A1", "A2"]
    assert "79991234567" in response.json()["paymentInstructions"]

    conflict = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["A1"]},
        headers=other,
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["error"] == "conflict"

    pending = client.get("/me/bookings", headers=user)
    assert [b["id"] for b in pending.json()] == [booking["id"]]

    confirm = client.post(f"/admin/bookings/{booking['id']}/confirm", headers=admin)
    assert confirm.status_code == 200
    assert confirm.json()["booking"]["status"] == "confirmed"

    again = client.post(f"/admin/bookings/{booking['id']}/confirm", headers=admin)
    assert again.status_code == 400
    assert again.json()["detail"]["error"] == "invalid_state"

    tickets = client.get("/me/tickets", headers=user)
    assert [b["id"] for b in tickets.json()] == [booking["id"]]
    assert client.get("/me/bookings", headers=user).json() == []

    seats = client.get("/events/evt-1").json()["tables"][0]["seats"]
    assert {s["id"]: s["status"] for s in seats}["A1"] == "sold"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200


def test_booking_requires_token(client):
    response = client.post("/bookings", json={"eventId": "evt-1", "seatIds": ["A1"]})

    assert response.status_code == 401


def test_booking_rejects_bad_token(client):
    response = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["A1"]},
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "unauthorized"


def test_admin_routes_reject_users(client, auth_headers):
    response = client.get("/admin/bookings", headers=auth_headers("u1"))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "forbidden"


def test_unknown_event_and_booking(client, auth_headers):
    assert client.get("/events/nope").status_code == 404

    missing = client.post(
        "/bookings",
        json={"eventId": "nope", "seatIds": ["A1"]},
        headers=auth_headers("u1"),
    )
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"] == "not_found"

    response = client.post(
        "/admin/bookings/nope/confirm",
        headers=auth_headers("admin", Role.ADMIN),
    )
    assert response.status_code == 404


def test_empty_seat_list_is_rejected(client, auth_headers):
    response = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": []},
        headers=auth_headers("u1"),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_request"


def test_other_users_booking_is_hidden(client, auth_headers):
    booking = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["B1"]},
        headers=auth_headers("u1"),
    ).json()["booking"]

    assert client.get(f"/bookings/{booking['id']}", headers=auth_headers("u1")).status_code == 200
    assert client.get(f"/bookings/{booking['id']}", headers=auth_headers("u2")).status_code == 404


def test_confirm_after_expiry(client, auth_headers, clock):
    booking = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["B1"]},
        headers=auth_headers("u1"),
    ).json()["booking"]

    clock.advance(minutes=16)

    response = client.post(
        f"/admin/bookings/{booking['id']}/confirm",
        headers=auth_headers("admin", Role.ADMIN),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "expired"


def test_reject_and_filter_by_status(client, auth_headers, clock):
    admin = auth_headers("admin", Role.ADMIN)
    first = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["B1"]},
        headers=auth_headers("u1"),
    ).json()["booking"]
    clock.advance(seconds=1)
    second = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["B2"]},
        headers=auth_headers("u2"),
    ).json()["booking"]

    rejected = client.post(f"/admin/bookings/{first['id']}/reject", headers=admin)
    assert rejected.json()["booking"]["cancelReason"] == "rejected"

    reserved = client.get("/admin/bookings", params={"status": "reserved"}, headers=admin)
    assert [b["id"] for b in reserved.json()] == [second["id"]]

    everything = client.get("/admin/bookings", headers=admin)
    assert [b["id"] for b in everything.json()] == [first["id"], second["id"]]


def test_admin_manages_events(client, auth_headers):
    admin = auth_headers("admin", Role.ADMIN)

    created = client.post(
        "/admin/events",
        json={
            "id": "evt-2",
            "title": "Jazz Night",
            "date": "2026-04-02",
            "paymentPhone": "79990000000",
            "tables": [{"id": "T1", "seats": [{"id": "J1", "price": 40}]}],
        },
        headers=admin,
    )
    assert created.status_code == 201
    assert created.json()["maxSeatsPerBooking"] == 4

    added = client.post(
        "/admin/events/evt-2/tables/T1/seats",
        json=[{"id": "J2", "price": 45}],
        headers=admin,
    )
    assert added.status_code == 201

    price = client.patch("/admin/events/evt-2/seats/J2", json={"price": 50}, headers=admin)
    assert price.json()["price"] == 50

    renamed = client.put("/admin/events/evt-2", json={"title": "Late Jazz"}, headers=admin)
    assert renamed.json()["title"] == "Late Jazz"

    seats = client.get("/admin/events/evt-2/seats", headers=admin).json()
    assert [s["id"] for s in seats] == ["J1", "J2"]

    assert client.delete("/admin/events/evt-2", headers=admin).status_code == 200
    assert client.get("/events/evt-2").status_code == 404


def test_delete_event_with_pending_reservation(client, auth_headers):
    client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["A3"]},
        headers=auth_headers("u1"),
    )

    response = client.delete("/admin/events/evt-1", headers=auth_headers("admin", Role.ADMIN))

    assert response.status_code == 409


def test_reject_confirmed_booking_is_bad_request(client, auth_headers):
    admin = auth_headers("admin", Role.ADMIN)
    booking = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": ["B4"]},
        headers=auth_headers("u1"),
    ).json()["booking"]
    client.post(f"/admin/bookings/{booking['id']}/confirm", headers=admin)

    response = client.post(f"/admin/bookings/{booking['id']}/reject", headers=admin)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_state"


def test_malformed_body_reports_invalid_request(client, auth_headers):
    response = client.post(
        "/bookings",
        json={"eventId": "evt-1", "seatIds": "A1"},
        headers=auth_headers("u1"),
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "invalid_request"
    assert detail["fields"]


def test_unknown_status_filter_reports_invalid_request(client, auth_headers):
    response = client.get(
        "/admin/bookings",
        params={"status": "paid"},
        headers=auth_headers("admin", Role.ADMIN),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_request"
