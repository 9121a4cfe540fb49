# Shared FastAPI dependencies.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from fastapi import Request
from hopcoder.services.session_manager import SessionManager


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager
