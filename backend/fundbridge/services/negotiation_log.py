"""Append-only negotiation log attached to a funding request.

Entries are validated here, stamped with a server timestamp that never
goes backwards within a request, and never modified afterwards.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import (
    MAX_EQUITY_PERCENT,
    MAX_FUNDING_AMOUNT,
    MAX_MESSAGE_LENGTH,
    NEGOTIATION_AUTHOR_ROLES,
)
from ..models.funding_request import FundingRequest, NegotiationEntry
from .errors import ValidationError

logger = logging.getLogger(__name__)


def implied_valuation(amount: Optional[float], equity: Optional[float]) -> Optional[float]:
    """Post-money valuation implied by `amount` for `equity` percent.

    Returns None when either term is missing or the quotient is not finite.
    """
    if not amount or not equity:
        return None
    valuation = amount / equity * 100
    if not math.isfinite(valuation):
        return None
    return float(round(valuation))


def validate_entry(
    message: Optional[str],
    proposed_amount: Optional[float],
    proposed_equity: Optional[float],
) -> str:
    """Check an entry's content and return the normalized message."""
    text = (message or "").strip()
    if not text and proposed_amount is None and proposed_equity is None:
        raise ValidationError(
            "A negotiation entry needs a message or at least one proposed term"
        )
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
    if proposed_amount is not None and not (
        math.isfinite(proposed_amount) and 0 < proposed_amount <= MAX_FUNDING_AMOUNT
    ):
        raise ValidationError(
            f"Proposed amount must be a positive number no greater than {MAX_FUNDING_AMOUNT:,.0f}"
        )
    if proposed_equity is not None and not (
        math.isfinite(proposed_equity) and 0 < proposed_equity <= MAX_EQUITY_PERCENT
    ):
        raise ValidationError("Proposed equity must be between 0 and 100 percent")
    return text


def _next_timestamp(db: Session, funding_request_id) -> datetime:
    now = datetime.utcnow()
    latest = (
        db.query(func.max(NegotiationEntry.created_at))
        .filter(NegotiationEntry.funding_request_id == funding_request_id)
        .scalar()
    )
    if latest is not None and latest > now:
        return latest
    return now


def append_entry(
    db: Session,
    request: FundingRequest,
    *,
    author_id,
    author_role: str,
    message: Optional[str] = None,
    proposed_amount: Optional[float] = None,
    proposed_equity: Optional[float] = None,
) -> NegotiationEntry:
    """Stage a new entry on the session. The caller commits."""
    if author_role not in NEGOTIATION_AUTHOR_ROLES:
        raise ValidationError(f"Negotiation entries cannot be authored by role {author_role!r}")
    text = validate_entry(message, proposed_amount, proposed_equity)

    entry = NegotiationEntry(
        funding_request_id=request.id,
        author_id=author_id,
        author_role=author_role,
        message=text,
        proposed_amount=proposed_amount,
        proposed_equity=proposed_equity,
        created_at=_next_timestamp(db, request.id),
    )
    db.add(entry)
    logger.info(
        "Negotiation entry staged on request %s by %s %s", request.id, author_role, author_id
    )
    return entry


def format_entry(entry: NegotiationEntry) -> str:
    """Render an entry as display text, including any proposed terms."""
    content = entry.message or ""
    if entry.proposed_amount is None and entry.proposed_equity is None:
        return content

    lines = ["Proposed Terms:"]
    if entry.proposed_amount is not None:
        lines.append(f"Amount: ${entry.proposed_amount:,.0f}")
    if entry.proposed_equity is not None:
        lines.append(f"Equity: {entry.proposed_equity:g}%")
    valuation = implied_valuation(entry.proposed_amount, entry.proposed_equity)
    if valuation is not None:
        lines.append(f"Implied Valuation: ${valuation:,.0f}")

    terms = "\n".join(lines)
    return f"{content}\n\n{terms}" if content else terms
