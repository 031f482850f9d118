import time
from datetime import datetime

import pytest

from app.core.config import settings
from app.core.rate_limit import configure_rate_limiter


@pytest.fixture
def conversation(make_user, befriend):
    alice, bob = make_user("Alice"), make_user("Bob")
    befriend(alice, bob)
    r = alice.post("/chat/start", json={"friendId": bob.id})
    assert r.status_code == 200
    return alice, bob, r.json()["conversationId"]


def _post(user, conversation_id, content):
    return user.post(f"/chat/conversations/{conversation_id}/messages", json={"content": content})


def test_start_is_get_or_create(conversation):
    alice, bob, conversation_id = conversation

    assert alice.post("/chat/start", json={"friendId": bob.id}).json()["conversationId"] == conversation_id
    assert bob.post("/chat/start", json={"friendId": alice.id}).json()["conversationId"] == conversation_id


def test_start_with_self_rejected(make_user):
    alice = make_user()
    assert alice.post("/chat/start", json={"friendId": alice.id}).status_code == 400


@pytest.mark.parametrize("length", [1, 1000])
def test_message_length_bounds_accepted(conversation, length):
    alice, _, conversation_id = conversation
    r = _post(alice, conversation_id, "x" * length)
    assert r.status_code == 201
    assert len(r.json()["content"]) == length


@pytest.mark.parametrize("content", ["x" * 1001, "", "   \n  "])
def test_message_length_bounds_rejected(conversation, content):
    alice, _, conversation_id = conversation
    r = _post(alice, conversation_id, content)
    assert r.status_code == 400
    assert r.json() == {"error": "Message must be 1-1000 characters"}


def test_message_is_trimmed(conversation):
    alice, bob, conversation_id = conversation
    _post(alice, conversation_id, "  hello  ")

    messages = bob.get(f"/chat/conversations/{conversation_id}/messages").json()
    assert [m["content"] for m in messages] == ["hello"]
    assert messages[0]["senderId"] == alice.id


def test_outsider_cannot_read_or_post(conversation, make_user):
    _, _, conversation_id = conversation
    mallory = make_user("Mallory")

    assert mallory.get(f"/chat/conversations/{conversation_id}/messages").status_code == 403
    assert _post(mallory, conversation_id, "hi").status_code == 403
    assert _post(mallory, 9999, "hi").status_code == 403


def test_messages_oldest_first_with_since_cursor(conversation):
    alice, bob, conversation_id = conversation
    first = _post(alice, conversation_id, "one").json()
    time.sleep(0.002)  # cursors have millisecond resolution
    _post(bob, conversation_id, "two")
    _post(alice, conversation_id, "three")

    url = f"/chat/conversations/{conversation_id}/messages"
    assert [m["content"] for m in bob.get(url).json()] == ["one", "two", "three"]

    later = bob.get(url, params={"since": first["createdAt"]}).json()
    assert [m["content"] for m in later] == ["two", "three"]

    # garbage cursor is ignored
    assert len(bob.get(url, params={"since": "yesterday"}).json()) == 3


def test_messages_capped_at_50(conversation, monkeypatch):
    monkeypatch.setattr(settings, "CHAT_RATE_LIMIT_MAX", 100)
    configure_rate_limiter()

    alice, bob, conversation_id = conversation
    for i in range(55):
        assert _post(alice, conversation_id, f"m{i}").status_code == 201

    messages = bob.get(f"/chat/conversations/{conversation_id}/messages").json()
    assert len(messages) == 50
    assert messages[0]["content"] == "m0"


def test_rate_limit(conversation, monkeypatch):
    monkeypatch.setattr(settings, "CHAT_RATE_LIMIT_MAX", 3)
    configure_rate_limiter()

    alice, bob, conversation_id = conversation
    for i in range(3):
        assert _post(alice, conversation_id, f"m{i}").status_code == 201

    r = _post(alice, conversation_id, "one too many")
    assert r.status_code == 429
    assert r.json() == {"error": "Rate limit exceeded. Try again later."}

    # limit is per sender
    assert _post(bob, conversation_id, "still fine").status_code == 201


def test_default_rate_limit_is_twenty_per_minute(conversation):
    alice, _, conversation_id = conversation
    codes = [_post(alice, conversation_id, f"m{i}").status_code for i in range(21)]
    assert codes == [201] * 20 + [429]


def test_conversation_list(conversation, make_user, befriend):
    alice, bob, conversation_id = conversation
    carol = make_user("Carol")
    befriend(alice, carol)
    other_id = alice.post("/chat/start", json={"friendId": carol.id}).json()["conversationId"]

    _post(carol, other_id, "from carol")
    _post(bob, conversation_id, "from bob")
    bob.post("/presence/heartbeat")

    conversations = alice.get("/chat/conversations").json()
    assert [c["id"] for c in conversations] == [conversation_id, other_id]

    latest = conversations[0]
    assert latest["friend"]["id"] == bob.id
    assert latest["lastMessage"]["content"] == "from bob"
    assert latest["presence"]["status"] == "ONLINE"
    assert conversations[1]["presence"] is None


def test_cursor_from_created_at_does_not_repeat(conversation):
    alice, bob, conversation_id = conversation
    url = f"/chat/conversations/{conversation_id}/messages"

    created_at = _post(alice, conversation_id, "hi").json()["createdAt"]
    assert created_at.endswith("Z")

    # what a browser does: new Date(createdAt).getTime()
    since_ms = round(datetime.fromisoformat(created_at.replace("Z", "+00:00")).timestamp() * 1000)
    assert bob.get(url, params={"since": str(since_ms)}).json() == []
    assert bob.get(url, params={"since": created_at}).json() == []

    assert [m["content"] for m in bob.get(url, params={"since": str(since_ms - 1)}).json()] == ["hi"]
