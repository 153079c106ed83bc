from abc import ABC, abstractmethod

from fastapi import Request
from pydantic import BaseModel

from queueup.errors import AuthenticationException, AuthorizationException

from .util import decode_token


class Actor(BaseModel):
    tenant_id: str
    actor_id: str
    name: str
    is_admin: bool = False


def actor_from_token_data(token_data: dict) -> Actor:
    try:
        return Actor(
            tenant_id=str(token_data["tenant_id"]),
            actor_id=str(token_data["actor_id"]),
            name=str(token_data.get("name") or token_data["actor_id"]),
            is_admin=bool(token_data.get("is_admin", False)),
        )
    except KeyError:
        raise AuthenticationException(detail="Could not validate actor")


class BearerToken(ABC):
    async def __call__(self, request: Request) -> Actor:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationException(detail="Bearer token not found")

        token_data = decode_token(token)
        if not token_data:
            raise AuthorizationException(detail="Invalid or expired token")

        actor = actor_from_token_data(token_data)
        tenant_id = request.path_params.get("tenant_id")
        if tenant_id is not None and tenant_id != actor.tenant_id:
            raise AuthorizationException(detail="Token does not belong to this tenant")

        self.verify_actor(actor)
        return actor

    @abstractmethod
    def verify_actor(self, actor: Actor): ...


class ActorToken(BearerToken):
    def verify_actor(self, actor: Actor):
        pass


class AdminToken(BearerToken):
    def verify_actor(self, actor: Actor):
        if not actor.is_admin:
            raise AuthorizationException(detail="Admin permissions required")


get_current_actor = ActorToken()
get_admin_actor = AdminToken()
