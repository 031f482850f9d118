from datetime import timedelta

import pytest
from sqlalchemy import update

from app.models.team import TeamInvite
from app.utils.time_utils import utc_now


def _create_team(owner, name="Scalpers"):
    r = owner.post("/teams", json={"name": name, "description": "Morning session"})
    assert r.status_code == 201, r.text
    return r.json()


def _invite(admin, team_id, email, role="MEMBER"):
    r = admin.post(f"/teams/{team_id}/invites", json={"email": email, "role": role})
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def team_with_member(make_user):
    owner, member = make_user("Olivia"), make_user("Mark")
    team = _create_team(owner)
    invite = _invite(owner, team["id"], member.email)
    assert member.post(f"/team-invites/{invite['token']}").status_code == 200
    return owner, member, team


def test_create_team_owner_membership(make_user):
    owner = make_user("Olivia")
    team = _create_team(owner)

    assert team["ownerId"] == owner.id
    assert team["owner"]["firstName"] == "Olivia"
    assert team["memberCount"] == 1

    members = owner.get(f"/teams/{team['id']}/members").json()
    assert [(m["userId"], m["role"]) for m in members] == [(owner.id, "OWNER")]
    assert [t["id"] for t in owner.get("/teams").json()] == [team["id"]]


@pytest.mark.parametrize("name", ["x", " ", "y" * 41])
def test_team_name_length(make_user, name):
    r = make_user().post("/teams", json={"name": name})
    assert r.status_code == 400
    assert r.json() == {"error": "Team name must be between 2 and 40 characters"}


def test_non_member_is_forbidden(make_user):
    owner, outsider = make_user(), make_user()
    team = _create_team(owner)

    r = outsider.get(f"/teams/{team['id']}")
    assert r.status_code == 403
    assert r.json() == {"error": "Not a team member"}
    assert outsider.get(f"/teams/{team['id']}/messages").status_code == 403


def test_update_requires_admin(team_with_member):
    owner, member, team = team_with_member

    r = member.patch(f"/teams/{team['id']}", json={"name": "Swing"})
    assert r.status_code == 403
    assert r.json() == {"error": "Insufficient permissions"}

    r = owner.patch(f"/teams/{team['id']}", json={"name": "Swing"})
    assert r.status_code == 200
    assert r.json()["name"] == "Swing"
    assert r.json()["description"] == "Morning session"


def test_invite_lifecycle(make_user):
    owner, invitee, other = make_user(), make_user(), make_user()
    team = _create_team(owner)
    invite = _invite(owner, team["id"], invitee.email.upper())

    assert invite["email"] == invitee.email
    assert len(invite["token"]) == 64
    assert [i["id"] for i in owner.get(f"/teams/{team['id']}/invites").json()] == [invite["id"]]
    assert [i["team"]["name"] for i in invitee.get("/team-invites/mine").json()] == ["Scalpers"]
    assert invitee.get(f"/team-invites/{invite['token']}").json()["team"]["id"] == team["id"]

    r = other.post(f"/team-invites/{invite['token']}")
    assert r.status_code == 403
    assert r.json() == {"error": "Invite email does not match your account email"}

    r = invitee.post(f"/team-invites/{invite['token']}")
    assert r.status_code == 200
    assert r.json()["role"] == "MEMBER"
    assert r.json()["user"]["id"] == invitee.id

    r = invitee.post(f"/team-invites/{invite['token']}")
    assert r.status_code == 400
    assert r.json() == {"error": "Invite already accepted"}

    assert owner.get(f"/teams/{team['id']}/invites").json() == []
    assert owner.get(f"/teams/{team['id']}").json()["memberCount"] == 2


def test_expired_invite(make_user, run_db):
    owner, invitee = make_user(), make_user()
    team = _create_team(owner)
    invite = _invite(owner, team["id"], invitee.email)

    async def expire(session):
        await session.execute(
            update(TeamInvite)
            .where(TeamInvite.id == invite["id"])
            .values(expires_at=utc_now() - timedelta(minutes=1))
        )
    run_db(expire)

    r = invitee.post(f"/team-invites/{invite['token']}")
    assert r.status_code == 400
    assert r.json() == {"error": "Invite has expired"}
    assert invitee.get("/team-invites/mine").json() == []


def test_invite_rules(team_with_member, make_user):
    owner, member, team = team_with_member

    r = owner.post(f"/teams/{team['id']}/invites", json={"email": member.email})
    assert r.status_code == 400
    assert r.json() == {"error": "User is already a team member"}

    r = owner.post(f"/teams/{team['id']}/invites", json={"email": "new@example.com", "role": "OWNER"})
    assert r.status_code == 400

    r = member.post(f"/teams/{team['id']}/invites", json={"email": "new@example.com"})
    assert r.status_code == 403

    assert owner.get("/team-invites/not-a-token").status_code == 404


def test_member_roles(team_with_member):
    owner, member, team = team_with_member
    url = f"/teams/{team['id']}/members"

    r = owner.patch(url, json={"userId": member.id, "role": "ADMIN"})
    assert r.status_code == 200
    assert r.json()["role"] == "ADMIN"

    r = member.patch(url, json={"userId": owner.id, "role": "MEMBER"})
    assert r.status_code == 400
    assert r.json() == {"error": "Cannot change owner role"}

    r = member.delete(url, json={"userId": owner.id})
    assert r.status_code == 400
    assert r.json() == {"error": "Cannot remove owner"}

    assert owner.patch(url, json={"userId": 9999, "role": "ADMIN"}).status_code == 404

    assert owner.delete(url, json={"userId": member.id}).status_code == 200
    assert [m["userId"] for m in owner.get(url).json()] == [owner.id]
    assert member.get(f"/teams/{team['id']}").status_code == 403


def test_team_messages(team_with_member):
    owner, member, team = team_with_member
    url = f"/teams/{team['id']}/messages"

    for i in range(52):
        sender = owner if i % 2 == 0 else member
        assert sender.post(url, json={"content": f"m{i}"}).status_code == 201

    messages = member.get(url).json()
    assert len(messages) == 50
    assert messages[0]["content"] == "m2"
    assert messages[-1]["content"] == "m51"
    assert messages[-1]["sender"]["id"] == member.id

    assert [m["content"] for m in member.get(url, params={"limit": 3}).json()] == ["m49", "m50", "m51"]
    assert len(member.get(url, params={"limit": 500}).json()) == 50
    assert member.get(url, params={"limit": "many"}).status_code == 400

    assert owner.post(url, json={"content": "x" * 1001}).status_code == 400


def test_rooms(team_with_member, make_user):
    owner, member, team = team_with_member
    url = f"/teams/{team['id']}/rooms"

    r = member.post(url, json={"name": "Open bell"})
    assert r.status_code == 201
    room = r.json()
    assert room["isActive"] is True
    assert room["teamId"] == team["id"]

    assert [r["id"] for r in owner.get(url).json()] == [room["id"]]
    assert member.post(url, json={"name": "x"}).json() == {"error": "Room name must be between 2 and 40 characters"}
    assert make_user().get(url).status_code == 403
