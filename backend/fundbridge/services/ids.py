from __future__ import annotations

from uuid import UUID

from .errors import NotFoundError


def parse_id(value, what: str) -> UUID:
    """Parse a path/body identifier; malformed ids cannot exist, so they are 404s."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{what} not found") from None
