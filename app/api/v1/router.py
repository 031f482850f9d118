from fastapi import APIRouter

from app.api.v1.endpoints import auth, users, friends, blocks, chat, presence, teams, team_invites, rooms

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(friends.router, prefix="/friends", tags=["friends"])
api_router.include_router(blocks.router, prefix="/blocks", tags=["blocks"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(presence.router, prefix="/presence", tags=["presence"])
api_router.include_router(teams.router, prefix="/teams", tags=["teams"])
api_router.include_router(team_invites.router, prefix="/team-invites", tags=["teams"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
