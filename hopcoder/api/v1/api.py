# The module is to define the API router for the agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from fastapi import APIRouter
from hopcoder.api.v1.endpoints import session, chat, provider, workspace

api_router = APIRouter()

# Include the session router with a '/session' prefix
api_router.include_router(session.router, prefix="/session", tags=["Session Management"])

# Include the chat router with a '/chat' prefix
api_router.include_router(chat.router, prefix="/chat", tags=["Conversation"])

api_router.include_router(provider.router, prefix="/provider", tags=["Provider"])

api_router.include_router(workspace.router, prefix="/workspace", tags=["Workspace"])
