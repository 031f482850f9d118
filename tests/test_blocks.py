import pytest
from sqlalchemy import select

from app.models.friendship import Block, FriendRequest, Friendship


def _rows(run_db, model):
    async def fn(session):
        return list((await session.execute(select(model))).scalars().all())
    return run_db(fn)


def test_block_removes_friendship_and_cancels_requests(make_user, befriend, run_db):
    alice, bob, carol = make_user(), make_user(), make_user()
    befriend(alice, bob)
    r = carol.post("/friends/requests", json={"toUserId": alice.id})
    carol_request_id = r.json()["id"]

    assert alice.post("/blocks", json={"userId": bob.id}).status_code == 200
    assert alice.post("/blocks", json={"userId": carol.id}).status_code == 200

    assert _rows(run_db, Friendship) == []
    statuses = {req.id: req.status for req in _rows(run_db, FriendRequest)}
    assert statuses[carol_request_id] == "CANCELED"
    assert all(s != "PENDING" for s in statuses.values())
    assert alice.get("/friends").json() == []


def test_block_is_idempotent(make_user, run_db):
    alice, bob = make_user(), make_user()

    assert alice.post("/blocks", json={"userId": bob.id}).status_code == 200
    assert alice.post("/blocks", json={"userId": bob.id}).status_code == 200
    assert len(_rows(run_db, Block)) == 1


def test_block_validation(make_user):
    alice = make_user()

    r = alice.post("/blocks", json={"userId": alice.id})
    assert r.status_code == 400
    assert r.json() == {"error": "Cannot block yourself"}

    assert alice.post("/blocks", json={"userId": 9999}).status_code == 404
    assert alice.post("/blocks", json={"userId": "abc"}).status_code == 400
    assert alice.post("/blocks", json={}).status_code == 400


def test_list_and_unblock(make_user):
    alice, bob = make_user("Alice"), make_user("Bob", "Builder")
    alice.post("/blocks", json={"userId": bob.id})

    blocks = alice.get("/blocks").json()
    assert len(blocks) == 1
    assert blocks[0]["userId"] == bob.id
    assert blocks[0]["firstName"] == "Bob"
    assert bob.get("/blocks").json() == []

    assert alice.delete("/blocks", json={"userId": bob.id}).status_code == 200
    assert alice.get("/blocks").json() == []

    r = alice.delete("/blocks", json={"userId": bob.id})
    assert r.status_code == 404
    assert r.json() == {"error": "Block not found"}


def test_requests_rejected_while_blocked_either_way(make_user):
    alice, bob = make_user(), make_user()
    alice.post("/blocks", json={"userId": bob.id})

    r = bob.post("/friends/requests", json={"toUserId": alice.id})
    assert r.status_code == 403
    assert alice.post("/friends/requests", json={"toUserId": bob.id}).status_code == 403


def test_unblock_does_not_restore_friendship(make_user, befriend):
    alice, bob = make_user(), make_user()
    befriend(alice, bob)

    alice.post("/blocks", json={"userId": bob.id})
    alice.delete("/blocks", json={"userId": bob.id})

    assert alice.get("/friends").json() == []
    r = alice.post("/chat/start", json={"friendId": bob.id})
    assert r.status_code == 403
    assert r.json() == {"error": "Not friends"}


def test_block_gates_messaging(make_user, befriend):
    alice, bob = make_user(), make_user()

    # no relationship yet
    assert alice.post("/chat/start", json={"friendId": bob.id}).json() == {"error": "Not friends"}

    befriend(alice, bob)
    r = alice.post("/chat/start", json={"friendId": bob.id})
    assert r.status_code == 200
    conversation_id = r.json()["conversationId"]

    bob.post("/blocks", json={"userId": alice.id})
    r = alice.post("/chat/start", json={"friendId": bob.id})
    assert r.status_code == 403
    assert r.json() == {"error": "Blocked"}

    r = alice.post(f"/chat/conversations/{conversation_id}/messages", json={"content": "hi"})
    assert r.status_code == 403


def test_access_gate_can_message(make_user, befriend, run_db):
    from app.services.access import AccessGate

    alice, bob = make_user(), make_user()

    def can_message():
        return run_db(lambda session: AccessGate(session).can_message(alice.id, bob.id))

    assert can_message() is False
    befriend(alice, bob)
    assert can_message() is True
    bob.post("/blocks", json={"userId": alice.id})
    assert can_message() is False


def test_failed_block_leaves_nothing_applied(make_user, befriend, run_db, monkeypatch):
    from app.repositories.friendship import FriendshipRepository

    alice, bob = make_user(), make_user()
    befriend(alice, bob)
    # a stale request from bob that the block would cancel
    request_id = run_db(lambda session: _add_pending_request(session, bob.id, alice.id))

    async def fail(self, blocker_id, blocked_id):
        raise RuntimeError("disk full")

    monkeypatch.setattr(FriendshipRepository, "upsert_block", fail)
    with pytest.raises(RuntimeError):
        alice.post("/blocks", json={"userId": bob.id})

    assert len(_rows(run_db, Friendship)) == 1
    assert _rows(run_db, Block) == []
    statuses = {req.id: req.status for req in _rows(run_db, FriendRequest)}
    assert statuses[request_id] == "PENDING"


async def _add_pending_request(session, from_user_id, to_user_id):
    request = FriendRequest(from_user_id=from_user_id, to_user_id=to_user_id, status="PENDING")
    session.add(request)
    await session.flush()
    return request.id
