"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Header, Request

from ..domain.enums import Role
from ..domain.errors import ValidationError
from ..services.sync_service import SyncService


def get_sync_service(request: Request) -> SyncService:
    """The SyncService started by the application lifespan"""
    return request.app.state.sync_service


async def get_actor_role_dep(
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role")
) -> Role:
    """
    Role of the caller, from the X-Actor-Role header.

    Identity is established upstream; a missing header means a plain
    user, which carries no transition rights.

    Raises:
        ValidationError: Header names an unknown role
    """
    if not x_actor_role or not x_actor_role.strip():
        return Role.USER
    try:
        return Role(x_actor_role.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown actor role: {x_actor_role}",
            details={"allowed": [r.value for r in Role]}
        )
