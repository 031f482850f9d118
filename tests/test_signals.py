import time

import pytest


@pytest.fixture
def room(make_user):
    host, guest = make_user("Host"), make_user("Guest")
    team = host.post("/teams", json={"name": "Desk"}).json()
    invite = host.post(f"/teams/{team['id']}/invites", json={"email": guest.email}).json()
    assert guest.post(f"/team-invites/{invite['token']}").status_code == 200

    room = host.post(f"/teams/{team['id']}/rooms", json={"name": "Live"}).json()
    return host, guest, room["id"]


def _signal(user, room_id, type_, payload=None, target_id=None):
    body = {"type": type_, "payload": payload if payload is not None else {"sdp": "v=0"}}
    if target_id is not None:
        body["targetId"] = target_id
    return user.post(f"/rooms/{room_id}/signal", json=body)


def test_poll_excludes_own_signals(room):
    host, guest, room_id = room

    r = _signal(host, room_id, "offer", target_id=guest.id)
    assert r.status_code == 201
    assert r.json()["targetId"] == guest.id

    received = guest.get(f"/rooms/{room_id}/signal").json()
    assert [(s["type"], s["senderId"]) for s in received] == [("offer", host.id)]
    assert received[0]["payload"] == {"sdp": "v=0"}

    assert host.get(f"/rooms/{room_id}/signal").json() == []


def test_since_cursor_is_strict(room):
    host, guest, room_id = room

    first = _signal(host, room_id, "join", payload={}).json()
    time.sleep(0.002)  # cursors have millisecond resolution
    _signal(host, room_id, "ice", payload={"candidate": "a"})
    _signal(host, room_id, "ice", payload={"candidate": "b"})

    later = guest.get(f"/rooms/{room_id}/signal", params={"since": first["createdAt"]}).json()
    assert [s["payload"] for s in later] == [{"candidate": "a"}, {"candidate": "b"}]

    last = later[-1]["createdAt"]
    assert guest.get(f"/rooms/{room_id}/signal", params={"since": last}).json() == []


def test_signal_validation(room):
    host, _, room_id = room

    r = _signal(host, room_id, "hangup")
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid signal type"}

    r = host.post(f"/rooms/{room_id}/signal", json={"type": "offer"})
    assert r.status_code == 400
    assert r.json() == {"error": "Payload is required"}


def test_signal_access(room, make_user):
    host, _, room_id = room
    outsider = make_user()

    r = _signal(outsider, room_id, "join")
    assert r.status_code == 403
    assert r.json() == {"error": "Not a team member"}
    assert outsider.get(f"/rooms/{room_id}/signal").status_code == 403

    r = host.get("/rooms/9999/signal")
    assert r.status_code == 404
    assert r.json() == {"error": "Room not found"}
