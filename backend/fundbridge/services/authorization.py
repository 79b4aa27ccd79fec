"""Owner-or-admin authorization, applied once at the service boundary.

The authenticated user is turned into an explicit `Actor` by
`auth_dependency.get_current_actor` and passed into every service call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from ..constants import ROLE_ADMIN, ROLE_ENTREPRENEUR, ROLE_INVESTOR
from .errors import AuthorizationError


@dataclass(frozen=True)
class Actor:
    id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_investor(self) -> bool:
        return self.role == ROLE_INVESTOR

    @property
    def is_entrepreneur(self) -> bool:
        return self.role == ROLE_ENTREPRENEUR

    def owns(self, owner_id: Any) -> bool:
        return owner_id is not None and str(owner_id) == str(self.id)


def ensure_owner_or_admin(owner_id: Any, actor: Actor, action: str) -> None:
    if actor.owns(owner_id) or actor.is_admin:
        return
    raise AuthorizationError(f"Not authorized to {action}")


def ensure_can_read(owner_id: Any, actor: Actor, what: str = "view this funding request") -> None:
    """Reads are open to the owner, admins and any investor."""
    if actor.owns(owner_id) or actor.is_admin or actor.is_investor:
        return
    raise AuthorizationError(f"Not authorized to {what}")


def ensure_can_negotiate(owner_id: Any, actor: Actor) -> None:
    """Negotiation entries come from the owning entrepreneur or an investor."""
    if actor.is_investor:
        return
    if actor.is_entrepreneur and actor.owns(owner_id):
        return
    raise AuthorizationError("Not authorized to negotiate on this funding request")


def ensure_role(actor: Actor, *roles: str, action: str) -> None:
    if actor.role not in roles:
        raise AuthorizationError(f"Access denied. Only {' or '.join(roles)} users can {action}")
