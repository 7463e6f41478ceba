from bson import ObjectId


def test_root(client):
    assert client.get("/").json() == {"message": "Elite Club Server is running"}


def test_database_check(client, store):
    store.courts.insert_one({"name": "Court A"})
    body = client.get("/test").json()
    assert body["connection_status"] == "Connected"
    assert "courts" in body["collections"]


def test_auth_required(client):
    for headers in ({}, {"Authorization": "Bearer"}, {"Authorization": "Bearer wrong"}):
        resp = client.get("/bookings/pending-all", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Unauthorized"


def test_public_routes_need_no_token(client):
    assert client.get("/courts").status_code == 200
    assert client.get("/coupons").status_code == 200
    assert client.get("/announcements").status_code == 200


def test_user_creation_is_idempotent(client, store):
    resp = client.post("/users", json={"email": "alice@x.com", "name": "Alice"})
    assert resp.status_code == 200
    assert resp.json()["created"] is True

    resp = client.post("/users", json={"email": "alice@x.com", "name": "Alice again"})
    assert resp.status_code == 200
    assert resp.json() == {"created": False, "message": "User already exists"}
    assert store.users.count_documents({"email": "alice@x.com"}) == 1
    assert store.users.find_one({"email": "alice@x.com"})["role"] == "user"


def test_user_lookup(client, make_user, auth_headers):
    make_user("alice@x.com")
    make_user("bob@x.com", role="member")

    resp = client.get("/users", params={"email": "ALICE@x.com"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "alice@x.com"
    assert client.get("/users", headers=auth_headers).status_code == 400
    assert client.get("/users", params={"email": "nobody@x.com"}, headers=auth_headers).status_code == 404

    assert len(client.get("/all-users", headers=auth_headers).json()) == 2
    assert [u["email"] for u in client.get("/members", headers=auth_headers).json()] == ["bob@x.com"]


def test_court_crud(client, store, auth_headers):
    resp = client.post("/courts", json={"name": "Court A", "type": "tennis", "price": 20, "surface": "clay"},
                       headers=auth_headers)
    assert resp.status_code == 201
    court_id = resp.json()["insertedId"]
    assert store.courts.find_one({"_id": ObjectId(court_id)})["surface"] == "clay"

    resp = client.patch(f"/courts/{court_id}", json={"price": 25}, headers=auth_headers)
    assert resp.status_code == 200
    assert client.get("/courts").json()[0]["price"] == 25

    assert client.patch("/courts/not-an-id", json={"price": 1}, headers=auth_headers).status_code == 400
    assert client.delete(f"/courts/{court_id}", headers=auth_headers).status_code == 200
    assert client.delete(f"/courts/{court_id}", headers=auth_headers).status_code == 404


def test_announcement_crud(client, auth_headers):
    resp = client.post("/announcements", json={"title": "Closed"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Title and message are required."

    resp = client.post("/announcements", json={"title": "Closed", "message": "Courts shut Monday"},
                       headers=auth_headers)
    assert resp.status_code == 201
    announcement_id = resp.json()["insertedId"]

    resp = client.patch(f"/announcements/{announcement_id}", json={"title": "Open", "message": "Back on"},
                        headers=auth_headers)
    assert resp.status_code == 200
    assert client.get("/announcements").json()[0]["title"] == "Open"

    missing = str(ObjectId())
    assert client.patch(f"/announcements/{missing}", json={"title": "a", "message": "b"},
                        headers=auth_headers).status_code == 404
    assert client.delete(f"/announcements/{announcement_id}", headers=auth_headers).status_code == 200


def test_membership_and_payment_scenario(client, store, identity, auth_headers):
    identity.add_user("alice@x.com", "uid-alice", token="alice-token")
    alice_headers = {"Authorization": "Bearer alice-token"}

    client.post("/users", json={"email": "alice@x.com"})
    booking_id = client.post("/bookings", json={"courtId": "court-1", "slot": "18:00"},
                             headers=alice_headers).json()["insertedId"]

    resp = client.patch(
        f"/bookings/approve/{booking_id}",
        json={"status": "approved", "approvedAt": "2026-05-01T10:00:00+00:00", "userEmail": "alice@x.com"},
        headers=auth_headers,
    )
    assert resp.json() == {
        "success": True,
        "message": "Booking approved and user promoted to member.",
        "userUpdated": True,
    }
    assert store.bookings.find_one({"_id": ObjectId(booking_id)})["status"] == "approved"
    assert store.users.find_one({"email": "alice@x.com"})["role"] == "member"

    resp = client.post("/payments", json={"bookingId": booking_id, "email": "alice@x.com", "price": 50},
                       headers=alice_headers)
    assert resp.status_code == 201
    assert store.bookings.find_one({"_id": ObjectId(booking_id)})["status"] == "confirmed"
    payments = client.get("/payments", headers=alice_headers).json()
    assert len(payments) == 1 and payments[0]["createdAt"]
    confirmed = client.get("/bookings/confirmed", headers=alice_headers).json()
    assert [b["_id"] for b in confirmed] == [booking_id]


def test_member_removal_scenario(client, store, identity, make_user, make_booking, auth_headers):
    identity.add_user("alice@x.com", "uid-alice")
    user_id = make_user("alice@x.com", role="member")
    for _ in range(3):
        make_booking("alice@x.com")

    resp = client.delete(f"/members/{user_id}", headers=auth_headers)
    assert resp.json()["deletedBookings"] == 3

    resp = client.get("/users", params={"email": "alice@x.com"}, headers=auth_headers)
    assert resp.status_code == 404
    assert "uid-alice" in identity.deleted


def test_invalid_body_is_client_error(client, auth_headers):
    resp = client.post("/coupons", json={"discount": 5}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request payload"
