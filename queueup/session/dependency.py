from fastapi import Depends, Request

from queueup.session.registry import SessionRegistry
from queueup.session.service import SessionService


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_session_service(registry: SessionRegistry = Depends(get_registry)) -> SessionService:
    return SessionService(registry)
