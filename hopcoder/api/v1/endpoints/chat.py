# The module is to define the API endpoints for chat interactions.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from fastapi import APIRouter, Depends
from hopcoder.api.deps import get_session_manager
from hopcoder.services.session_manager import SessionManager
from hopcoder.utils.logger import console
from hopcoder.models.api_models import ChatRequest, ChatResponse

router = APIRouter()

@router.post("/",
          response_model=ChatResponse)
async def chat_with_hopcoder(request: ChatRequest, sessions: SessionManager = Depends(get_session_manager)):
    """
    Sends one user message and runs the agent loop until the assistant answers.
    """
    console.info(f"Received chat request for session_id: {request.session_id}")

    async with sessions.lock(request.session_id):
        orchestrator = await sessions.get_orchestrator(request.session_id)
        first_new = len(orchestrator.history)
        await orchestrator.send_message(request.user_input)
        new_messages = orchestrator.get_history()[first_new:]

    final = new_messages[-1]
    tool_calls = [call for message in new_messages for call in (message.tool_calls or [])]
    console.success(f"Sending response for session_id: {request.session_id}")

    return ChatResponse(
        session_id=request.session_id,
        role=final.role,
        content=final.content,
        tool_calls=tool_calls,
        provider=orchestrator.provider.name,
    )
