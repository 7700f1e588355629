from contextlib import ExitStack


def test_register_and_login(client):
    resp = client.post("/api/auth/register", json={"username": "pat", "password": "secret1", "role": "Police"})
    assert resp.status_code == 201
    user = resp.json()
    assert user["username"] == "pat"
    assert user["role"] == "Police"
    assert "hashed_password" not in user

    resp = client.post("/api/auth/login", data={"username": "pat", "password": "secret1"})
    assert resp.status_code == 200
    token = resp.json()
    assert token["token_type"] == "bearer"
    assert token["user_id"] == user["id"]
    assert token["role"] == "Police"

    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.json()["username"] == "pat"


def test_register_duplicate_username(client, make_user):
    make_user("pat")
    resp = client.post("/api/auth/register", json={"username": "pat", "password": "secret1"})
    assert resp.status_code == 400
    assert resp.json() == {"message": 'User "pat" already exists'}


def test_register_rejects_bad_input(client):
    resp = client.post("/api/auth/register", json={"username": "a b", "password": "secret1"})
    assert resp.status_code == 400
    assert "username" in resp.json()["message"]


def test_login_wrong_password(client, make_user):
    make_user("pat")
    resp = client.post("/api/auth/login", data={"username": "pat", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json() == {"message": 'User "pat" does not exist or incorrect password'}


def test_invalid_token_is_rejected(client):
    resp = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_seeded_administrator_can_log_in(client):
    resp = client.post("/api/auth/login", data={"username": "admin", "password": "admin1234"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "Administrator"


def test_user_list_puts_online_users_first(client, make_user, connect):
    _, headers, _ = make_user("zoe", "Police")
    make_user("adam", "Fire")
    _, _, token = make_user("yuri", "Nurse")

    with ExitStack() as stack:
        connect(stack, token)
        users = client.get("/api/users", headers=headers).json()

    assert [(user["username"], user["online"]) for user in users] == [
        ("yuri", True),
        ("adam", False),
        ("admin", False),
        ("zoe", False),
    ]


def test_location(client, make_user):
    user, headers, _ = make_user("pat", "Police")

    resp = client.get(f"/api/users/{user['id']}/location", headers=headers)
    assert resp.json() == {"latitude": 0, "longitude": 0}

    resp = client.put(f"/api/users/{user['id']}/location", json={"latitude": 42.5, "longitude": -71.1}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"latitude": 42.5, "longitude": -71.1}

    resp = client.put(f"/api/users/{user['id']}/location", json={"latitude": 91, "longitude": 0}, headers=headers)
    assert resp.status_code == 400


def test_assignment_follows_role(client, make_user):
    police, headers, _ = make_user("pat", "Police")
    fire, _, _ = make_user("fred", "Fire")

    resp = client.put(
        f"/api/users/{police['id']}/assignment",
        json={"role": "Police", "assigned_car": "car-7", "assigned_city": "Springfield"},
        headers=headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["assigned_car"] == "car-7"
    assert body["assigned_city"] == "Springfield"
    assert body["assigned_vehicle_timestamp"] is not None

    resp = client.put(
        f"/api/users/{fire['id']}/assignment",
        json={"role": "Police", "assigned_car": "car-8"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Police assignment is not allowed for user with role Fire"}

    resp = client.put(
        f"/api/users/{fire['id']}/assignment",
        json={"role": "Nurse", "assigned_truck": "truck-1"},
        headers=headers,
    )
    assert resp.status_code == 400


def test_unknown_user(client, make_user):
    _, headers, _ = make_user("pat")
    resp = client.get("/api/users/999", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "User with ID 999 not found"}


def test_available_personnel(client, make_user):
    police, headers, _ = make_user("pat", "Police")
    fire, _, _ = make_user("fred", "Fire")
    assigned, _, _ = make_user("zack", "Police")
    make_user("nina", "Nurse")

    client.put(
        f"/api/users/{assigned['id']}/assignment",
        json={"role": "Police", "assigned_city": "Springfield"},
        headers=headers,
    )

    resp = client.get("/api/personnel/available", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == [
        {"id": fire["id"], "name": "fred", "assigned_city": None},
        {"id": police["id"], "name": "pat", "assigned_city": None},
    ]


def test_release_vehicle(client, make_user):
    police, headers, _ = make_user("pat", "Police")
    client.put(
        f"/api/users/{police['id']}/assignment",
        json={"role": "Police", "assigned_car": "car-7", "assigned_city": "Springfield"},
        headers=headers,
    )

    resp = client.put("/api/personnel/pat/vehicle/release", json={"vehicle_name": "car-9"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Vehicle car-9 is not assigned to pat"}

    resp = client.put("/api/personnel/pat/vehicle/release", json={"vehicle_name": "car-7"}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["assigned_car"] is None
    assert body["assigned_vehicle_timestamp"] is None
    assert body["assigned_city"] == "Springfield"


def test_release_vehicle_needs_a_responder(client, make_user):
    _, headers, _ = make_user("nina", "Nurse")

    resp = client.put("/api/personnel/nina/vehicle/release", json={"vehicle_name": "car-1"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "User nina is not a police officer or firefighter"}

    resp = client.put("/api/personnel/ghost/vehicle/release", json={"vehicle_name": "car-1"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "User with name ghost not found"}
