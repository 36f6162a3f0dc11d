"""
Shared route dependencies
"""
from fastapi import HTTPException, Request

from elimination_chamber.services.session import SessionLifecycle


def get_lifecycle(request: Request) -> SessionLifecycle:
    """Session lifecycle owned by the running application"""
    lifecycle = getattr(request.app.state, "lifecycle", None)
    if lifecycle is None:
        raise HTTPException(status_code=503, detail="Session service is not ready")
    return lifecycle
