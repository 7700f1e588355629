from contextlib import ExitStack

import pytest


@pytest.fixture
def crew(make_user):
    return {name: make_user(name, role) for name, role in (("dina", "Dispatch"), ("pat", "Police"), ("fred", "Fire"))}


def _channel(client, crew, owner="dina", members=("pat",), name="ops"):
    _, headers, _ = crew[owner]
    member_ids = [crew[member][0]["id"] for member in members]
    resp = client.post("/api/channels", json={"name": name, "member_ids": member_ids}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_channel_notifies_members(client, crew, bus):
    channel = _channel(client, crew)

    assert channel["owner_id"] == crew["dina"][0]["id"]
    assert [member["username"] for member in channel["members"]] == ["dina", "pat"]
    for name in ("dina", "pat"):
        assert bus.events(f"user:{crew[name][0]['id']}") == ["updateGroups"]
    assert bus.events(f"user:{crew['fred'][0]['id']}") == []


def test_duplicate_channel_name(client, crew):
    _channel(client, crew)
    _, headers, _ = crew["pat"]
    resp = client.post("/api/channels", json={"name": "ops"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": 'Channel "ops" already exists'}


def test_unknown_channel_member(client, crew):
    _, headers, _ = crew["dina"]
    resp = client.post("/api/channels", json={"name": "ops", "member_ids": [999]}, headers=headers)
    assert resp.status_code == 400


def test_list_my_channels(client, crew):
    _channel(client, crew, name="ops")
    _channel(client, crew, owner="fred", members=(), name="fire-only")

    _, headers, _ = crew["pat"]
    assert [channel["name"] for channel in client.get("/api/channels", headers=headers).json()] == ["ops"]


def test_post_and_read_messages(client, crew, connect):
    channel = _channel(client, crew)
    _, dina_headers, _ = crew["dina"]
    _, pat_headers, pat_token = crew["pat"]

    with ExitStack() as stack:
        pat_ws = connect(stack, pat_token)
        resp = client.post(
            f"/api/channels/{channel['id']}/messages",
            json={"content": "units en route"},
            headers=dina_headers,
        )
        assert resp.status_code == 201
        pushed = pat_ws.receive_json()

    assert pushed["type"] == "new-message"
    assert pushed["data"]["content"] == "units en route"
    assert pushed["data"]["senderName"] == "dina"

    messages = client.get(f"/api/channels/{channel['id']}/messages", headers=pat_headers).json()
    assert [message["content"] for message in messages] == ["units en route"]


def test_non_members_are_refused(client, crew):
    channel = _channel(client, crew)
    _, headers, _ = crew["fred"]

    resp = client.post(f"/api/channels/{channel['id']}/messages", json={"content": "hi"}, headers=headers)
    assert resp.status_code == 403
    resp = client.get(f"/api/channels/{channel['id']}/messages", headers=headers)
    assert resp.status_code == 403


def test_acknowledge_alert(client, crew, bus):
    channel = _channel(client, crew)
    dina, dina_headers, _ = crew["dina"]
    pat, pat_headers, _ = crew["pat"]

    alert = client.post(
        f"/api/channels/{channel['id']}/messages",
        json={"content": "evacuate", "is_alert": True},
        headers=dina_headers,
    ).json()

    resp = client.patch(
        f"/api/channels/{channel['id']}/messages/acknowledge",
        json={"message_id": alert["id"]},
        headers=pat_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["acknowledged_by"] == [pat["id"]]
    assert resp.json()["acknowledged_at"] is not None
    assert bus.events(f"user:{dina['id']}")[-1] == "acknowledge-alert"


def test_only_alerts_can_be_acknowledged(client, crew):
    channel = _channel(client, crew)
    _, dina_headers, _ = crew["dina"]
    _, pat_headers, _ = crew["pat"]

    message = client.post(
        f"/api/channels/{channel['id']}/messages",
        json={"content": "status?"},
        headers=dina_headers,
    ).json()

    resp = client.patch(
        f"/api/channels/{channel['id']}/messages/acknowledge",
        json={"message_id": message["id"]},
        headers=pat_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": f"Message {message['id']} is not an alert"}
