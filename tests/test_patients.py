import pytest


@pytest.fixture
def nurse(make_user):
    return make_user("nina", "Nurse")


def _patient(client, headers, **fields):
    resp = client.post("/api/patients", json=fields, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _update_status(client, headers, patient_id, **fields):
    resp = client.put(f"/api/patients/{patient_id}/status", json=fields, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_and_read_patient(client, nurse):
    user, headers, _ = nurse

    created = _patient(client, headers, name="Jane Doe", sex="F", dob="1990-01-01", user_id=user["id"])
    assert created["patient_id"]
    assert created["user_id"] == user["id"]

    resp = client.get(f"/api/patients/{created['patient_id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Jane Doe"


def test_duplicate_patient_id(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")

    resp = client.post("/api/patients", json={"patient_id": "pat-1"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Patient pat-1 already exists"}


def test_patient_for_unknown_user(client, nurse):
    _, headers, _ = nurse
    resp = client.post("/api/patients", json={"name": "Jane", "user_id": 999}, headers=headers)
    assert resp.status_code == 404


def test_update_patient_details(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1", name="Jane", sex="F")

    resp = client.put("/api/patients/pat-1", json={"name": "Jane Smith"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Jane Smith"
    assert resp.json()["sex"] == "F"


def test_unknown_patient(client, nurse):
    _, headers, _ = nurse
    resp = client.get("/api/patients/ghost", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Patient with ID ghost not found"}

    resp = client.put("/api/patients/ghost/status", json={"age": 30}, headers=headers)
    assert resp.status_code == 404


def test_status_without_metadata(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")

    resp = client.get("/api/patients/pat-1/status", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "No metadata found for patient pat-1"}


def test_metadata_versions_carry_previous_fields(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")

    first = _update_status(client, headers, "pat-1", age=42, conscious="yes", condition="Burn")
    assert first["loc"] == "road"
    assert first["er_priority"] == "e"
    assert first["is_visit_log"] is False

    second = _update_status(client, headers, "pat-1", breathing="no", er_priority="1")
    assert second["age"] == 42
    assert second["conscious"] == "yes"
    assert second["condition"] == "Burn"
    assert second["breathing"] == "no"
    assert second["er_priority"] == "1"

    latest = client.get("/api/patients/pat-1/status", headers=headers).json()
    assert latest == second


def test_metadata_rejects_unknown_condition(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")

    resp = client.put("/api/patients/pat-1/status", json={"condition": "Hiccups"}, headers=headers)
    assert resp.status_code == 400
    assert "condition" in resp.json()["message"]


def test_visit_logs(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")
    _update_status(client, headers, "pat-1", age=42)

    resp = client.post("/api/patients/pat-1/visitlogs", json={"chief_complaint": "chest pain"}, headers=headers)
    assert resp.status_code == 201
    log = resp.json()
    assert log["is_visit_log"] is True
    assert log["age"] == 42
    assert log["chief_complaint"] == "chest pain"

    # A later plain update is not a visit log
    _update_status(client, headers, "pat-1", age=43)

    logs = client.get("/api/patients/pat-1/visitlogs", headers=headers).json()
    assert [entry["chief_complaint"] for entry in logs] == ["chest pain"]
    assert client.get("/api/patients/pat-1/status", headers=headers).json()["is_visit_log"] is False


def test_patients_listed_with_latest_metadata(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")
    _patient(client, headers, patient_id="pat-2")
    _update_status(client, headers, "pat-1", age=30)
    _update_status(client, headers, "pat-1", age=31)

    patients = client.get("/api/patients", headers=headers).json()
    assert [patient["patient_id"] for patient in patients] == ["pat-1", "pat-2"]
    assert patients[0]["latest_status"]["age"] == 31
    assert patients[1]["latest_status"] is None


def test_assigned_and_unassigned_patients(client, nurse):
    _, headers, _ = nurse
    _patient(client, headers, patient_id="pat-1")
    _patient(client, headers, patient_id="pat-2")
    _patient(client, headers, patient_id="pat-3")
    _update_status(client, headers, "pat-1", hospital_id="h1")
    _update_status(client, headers, "pat-2", age=50)

    resp = client.get("/api/patients/assigned", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert [patient["patient_id"] for patient in body["assigned"]] == ["pat-1"]
    assert [patient["patient_id"] for patient in body["unassigned"]] == ["pat-2", "pat-3"]
