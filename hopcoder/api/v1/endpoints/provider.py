# This module provides API endpoints for switching a session's chat provider.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from fastapi import APIRouter, Depends
from hopcoder.api.deps import get_session_manager
from hopcoder.models.api_models import ApiKeyRequest, AzureAgentRequest, ProviderResponse
from hopcoder.services.session_manager import SessionManager
from hopcoder.utils.logger import console

router = APIRouter()

@router.post("/azure", response_model=ProviderResponse)
async def use_azure_agent(request: AzureAgentRequest, sessions: SessionManager = Depends(get_session_manager)):
    """Stores Azure agent credentials and restarts the session on that backend."""
    async with sessions.lock(request.session_id):
        orchestrator = await sessions.get_orchestrator(request.session_id)
        await orchestrator.set_azure_agent(request.endpoint, request.api_key)
    console.info(f"Session {request.session_id} switched to {orchestrator.provider.name}.")
    return ProviderResponse(session_id=request.session_id, provider=orchestrator.provider.name)

@router.post("/openai", response_model=ProviderResponse)
async def use_openai(request: ApiKeyRequest, sessions: SessionManager = Depends(get_session_manager)):
    async with sessions.lock(request.session_id):
        orchestrator = await sessions.get_orchestrator(request.session_id)
        await orchestrator.set_api_key(request.api_key)
    return ProviderResponse(session_id=request.session_id, provider=orchestrator.provider.name)

@router.delete("/{session_id}", response_model=ProviderResponse)
async def clear_credentials(session_id: str, sessions: SessionManager = Depends(get_session_manager)):
    """Forgets stored credentials and returns the session to the built-in provider."""
    async with sessions.lock(session_id):
        orchestrator = await sessions.get_orchestrator(session_id)
        await orchestrator.clear_api_key()
    return ProviderResponse(session_id=session_id, provider=orchestrator.provider.name)
