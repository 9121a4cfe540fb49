# This module provides API endpoints for opening and closing the workspace.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from fastapi import APIRouter, Depends, HTTPException
from hopcoder.api.deps import get_session_manager
from hopcoder.core.errors import SandboxError
from hopcoder.models.api_models import WorkspaceOpenRequest, WorkspaceResponse
from hopcoder.services.session_manager import SessionManager

router = APIRouter()

def _workspace_response(sessions: SessionManager) -> WorkspaceResponse:
    return WorkspaceResponse(root=sessions.workspace.root, tools=sorted(sessions.registry.tools))

@router.get("/", response_model=WorkspaceResponse)
def get_workspace(sessions: SessionManager = Depends(get_session_manager)):
    return _workspace_response(sessions)

@router.post("/open", response_model=WorkspaceResponse)
async def open_workspace(request: WorkspaceOpenRequest, sessions: SessionManager = Depends(get_session_manager)):
    try:
        await sessions.open_workspace(request.root)
    except SandboxError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _workspace_response(sessions)

@router.post("/close", response_model=WorkspaceResponse)
def close_workspace(sessions: SessionManager = Depends(get_session_manager)):
    sessions.close_workspace()
    return _workspace_response(sessions)
