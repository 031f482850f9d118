from app.models.user import User
from app.models.friendship import Friendship, FriendRequest, Block
from app.models.chat import Conversation, Message
from app.models.presence import Presence
from app.models.team import Team, TeamMember, TeamInvite, TeamMessage, TeamRoom, RoomSignal

__all__ = [
    "User",
    "Friendship", "FriendRequest", "Block",
    "Conversation", "Message",
    "Presence",
    "Team", "TeamMember", "TeamInvite", "TeamMessage", "TeamRoom", "RoomSignal",
]
