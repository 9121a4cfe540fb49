# The module is to define the API endpoints for session management.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0


from fastapi import APIRouter, Depends
from hopcoder.api.deps import get_session_manager
from hopcoder.services.session_manager import SessionManager
from hopcoder.utils.logger import console
from hopcoder.models.api_models import HistoryResponse, NewSessionResponse

router = APIRouter()

@router.post("/new",
          response_model=NewSessionResponse)
async def create_new_session(sessions: SessionManager = Depends(get_session_manager)):
    """
    Initializes a new session and returns a unique session ID.
    """
    session_id = sessions.new_session_id()
    await sessions.get_orchestrator(session_id)
    console.info(f"New session created: {session_id}")
    return NewSessionResponse(
        session_id=session_id,
        message="New session created successfully."
    )

def _history_response(session_id: str, orchestrator) -> HistoryResponse:
    return HistoryResponse(
        session_id=session_id,
        provider=orchestrator.provider.name,
        state=orchestrator.state.value,
        messages=orchestrator.get_history(),
    )

@router.get("/{session_id}/history",
          response_model=HistoryResponse)
async def get_history(session_id: str, sessions: SessionManager = Depends(get_session_manager)):
    orchestrator = await sessions.get_orchestrator(session_id)
    return _history_response(session_id, orchestrator)

@router.post("/{session_id}/clear",
          response_model=HistoryResponse)
async def clear_history(session_id: str, sessions: SessionManager = Depends(get_session_manager)):
    """
    Resets the conversation to its system message.
    """
    async with sessions.lock(session_id):
        orchestrator = await sessions.get_orchestrator(session_id)
        await orchestrator.clear_history()
    return _history_response(session_id, orchestrator)
