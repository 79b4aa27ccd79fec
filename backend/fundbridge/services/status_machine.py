"""Funding request status state machine.

    pending ──► negotiated ──► accepted | declined
       │             │
       ├─────────────┴──► withdrawn
       └──► accepted | declined

accepted, declined and withdrawn are terminal.
"""

from __future__ import annotations

from enum import Enum

from .errors import InvalidStateError, ValidationError


class FundingStatus(str, Enum):
    PENDING = "pending"
    NEGOTIATED = "negotiated"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"


TRANSITIONS: dict[FundingStatus, frozenset[FundingStatus]] = {
    FundingStatus.PENDING: frozenset(
        {
            FundingStatus.NEGOTIATED,
            FundingStatus.ACCEPTED,
            FundingStatus.DECLINED,
            FundingStatus.WITHDRAWN,
        }
    ),
    FundingStatus.NEGOTIATED: frozenset(
        {FundingStatus.ACCEPTED, FundingStatus.DECLINED, FundingStatus.WITHDRAWN}
    ),
    FundingStatus.ACCEPTED: frozenset(),
    FundingStatus.DECLINED: frozenset(),
    FundingStatus.WITHDRAWN: frozenset(),
}

OPEN_STATUSES: frozenset[FundingStatus] = frozenset(
    {FundingStatus.PENDING, FundingStatus.NEGOTIATED}
)
TERMINAL_STATUSES: frozenset[FundingStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def parse_status(value: str | FundingStatus) -> FundingStatus:
    """Coerce a stored or user-supplied string to a FundingStatus."""
    try:
        return FundingStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown funding request status: {value!r}") from None


def can_transition(current: str | FundingStatus, target: str | FundingStatus) -> bool:
    return parse_status(target) in TRANSITIONS[parse_status(current)]


def ensure_transition(current: str | FundingStatus, target: str | FundingStatus) -> FundingStatus:
    """Return the target status, or raise InvalidStateError if the move is illegal."""
    source = parse_status(current)
    destination = parse_status(target)
    if destination not in TRANSITIONS[source]:
        if source in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Funding request is already {source.value}; no further changes are allowed"
            )
        raise InvalidStateError(
            f"Cannot move a funding request from {source.value} to {destination.value}"
        )
    return destination


def is_open(status: str | FundingStatus) -> bool:
    return parse_status(status) in OPEN_STATUSES


def is_terminal(status: str | FundingStatus) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def ensure_open(status: str | FundingStatus, action: str) -> None:
    """Raise InvalidStateError unless the request still accepts `action`."""
    current = parse_status(status)
    if current not in OPEN_STATUSES:
        raise InvalidStateError(f"Cannot {action} a funding request that is {current.value}")
