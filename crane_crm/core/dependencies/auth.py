"""Caller identity dependencies.

Authentication happens at the upstream gateway, which forwards the verified
identity as headers:

- ``X-User-Id``: required user identifier
- ``X-User-Role``: optional role (``admin``, ``sales_agent``, ``operator``, ...)

Usage:
    @router.get("/notifications")
    async def list_notifications(user: CurrentUserDep):
        ...

    @router.post("/notifications/send")
    async def send(user: Annotated[CurrentUser, Depends(require_roles("admin"))]):
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Header

from crane_crm.core.exceptions import ForbiddenException, UnauthorizedException
from crane_crm.infra.logging import set_log_context


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """Identity forwarded by the gateway."""

    id: str
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Build the caller identity from gateway headers.

    Raises:
        UnauthorizedException: If X-User-Id is absent or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedException(
            detail="Missing X-User-Id header",
            type="missing-identity",
        )
    user = CurrentUser(id=x_user_id.strip(), role=(x_user_role or None))
    set_log_context(user_id=user.id)
    return user


def require_roles(*roles: str) -> Callable[..., Coroutine[Any, Any, CurrentUser]]:
    """Dependency factory restricting an endpoint to the given roles."""

    async def _check(user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
        if user.role not in roles:
            raise ForbiddenException(
                detail=f"Role {user.role or 'none'!r} may not perform this operation",
                extra={"required_roles": list(roles)},
            )
        return user

    return _check


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
