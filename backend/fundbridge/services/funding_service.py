"""Funding request service: the single entry point for request reads and writes.

Every operation receives the session and an explicit `Actor`, applies the
authorization rule once, consults the status state machine and commits a
single transaction. Expected failures raise `ServiceError` subclasses; the
HTTP layer maps them to status codes.

Concurrency:
  - Owner edits and withdrawals go through the ORM and are protected by
    the request's `version` column (optimistic locking). A stale write
    raises InvalidStateError instead of silently overwriting.
  - Negotiation entries are independent rows. The pending → negotiated
    move they trigger is a status-guarded UPDATE, so several investors can
    answer the same request at once without conflicting.
  - Accept/decline is a status-guarded UPDATE too; exactly one decision wins.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..constants import (
    IDEA_STATUS_ACTIVE,
    IDEA_STATUS_FUNDED,
    IDEA_STATUS_FUNDING_REQUESTED,
    MAX_EQUITY_PERCENT,
    MAX_FUNDING_AMOUNT,
    MUTABLE_FUNDING_FIELDS,
    PIPELINE_STAGES,
    ROLE_ADMIN,
    ROLE_ENTREPRENEUR,
    ROLE_INVESTOR,
)
from ..models.funding_request import FundingRequest, FundingRequestView, NegotiationEntry
from ..schemas.funding_schema import (
    FundingDecision,
    FundingRequestCreate,
    FundingRequestFilters,
    FundingRequestUpdate,
    NegotiationEntryCreate,
)
from .authorization import (
    Actor,
    ensure_can_negotiate,
    ensure_can_read,
    ensure_owner_or_admin,
    ensure_role,
)
from .errors import InvalidStateError, NotFoundError, ValidationError
from .idea_service import get_owned_idea
from .ids import parse_id
from .negotiation_log import append_entry, implied_valuation
from .status_machine import (
    OPEN_STATUSES,
    FundingStatus,
    ensure_open,
    ensure_transition,
)

logger = logging.getLogger(__name__)

_OPEN_VALUES = [status.value for status in OPEN_STATUSES]


# ── Helpers ──────────────────────────────────────────────────────────────

def _load(db: Session, request_id) -> FundingRequest:
    request = (
        db.query(FundingRequest)
        .filter(FundingRequest.id == parse_id(request_id, "Funding request"))
        .first()
    )
    if request is None:
        raise NotFoundError("Funding request not found")
    return request


def _validate_terms(amount: Optional[float], equity: Optional[float]) -> None:
    if amount is None or not math.isfinite(amount) or not (0 < amount <= MAX_FUNDING_AMOUNT):
        raise ValidationError(
            f"Amount must be a positive number no greater than {MAX_FUNDING_AMOUNT:,.0f}"
        )
    if equity is None or not math.isfinite(equity) or not (0 < equity <= MAX_EQUITY_PERCENT):
        raise ValidationError("Equity must be a number between 0 and 100")


def _commit(db: Session, request: FundingRequest) -> FundingRequest:
    """Commit the pending ORM changes on `request`, translating lost races."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Stale write rejected for funding request %s", request.id)
        raise InvalidStateError(
            "Funding request was modified by someone else; reload it and try again"
        ) from None
    db.refresh(request)
    return request


# ── Operations ───────────────────────────────────────────────────────────

def create_funding_request(
    db: Session, actor: Actor, payload: FundingRequestCreate
) -> FundingRequest:
    """Open a new funding request for one of the actor's ideas (status pending)."""
    ensure_role(actor, ROLE_ENTREPRENEUR, action="request funding")
    _validate_terms(payload.amount, payload.equity)
    idea = get_owned_idea(db, payload.idea_id, actor)

    existing = (
        db.query(FundingRequest.id)
        .filter(
            FundingRequest.idea_id == idea.id,
            FundingRequest.status.in_(_OPEN_VALUES),
        )
        .first()
    )
    if existing is not None:
        raise ValidationError("An active funding request already exists for this idea")

    fields = payload.model_dump(exclude={"idea_id"}, exclude_none=True)
    request = FundingRequest(
        idea_id=idea.id,
        entrepreneur_id=actor.id,
        status=FundingStatus.PENDING.value,
        valuation=implied_valuation(payload.amount, payload.equity),
        **fields,
    )
    db.add(request)
    db.flush()

    if request.message:
        append_entry(
            db,
            request,
            author_id=actor.id,
            author_role=ROLE_ENTREPRENEUR,
            message=request.message,
        )

    idea.status = IDEA_STATUS_FUNDING_REQUESTED
    db.commit()
    db.refresh(request)
    logger.info(
        "Funding request %s created for idea %s: %.2f for %.2f%%",
        request.id, idea.id, request.amount, request.equity,
    )
    return request


def get_funding_request(db: Session, request_id, actor: Actor) -> FundingRequest:
    request = _load(db, request_id)
    ensure_can_read(request.entrepreneur_id, actor)
    return request


def list_funding_requests(
    db: Session, actor: Actor, filters: FundingRequestFilters
) -> tuple[list[FundingRequest], int]:
    """Return one page of requests visible to the actor, newest first, and the total."""
    query = db.query(FundingRequest)
    if actor.is_entrepreneur:
        query = query.filter(FundingRequest.entrepreneur_id == actor.id)
    elif not (actor.is_investor or actor.is_admin):
        return [], 0

    if filters.status:
        query = query.filter(FundingRequest.status == filters.status)
    if filters.funding_stage:
        query = query.filter(FundingRequest.funding_stage == filters.funding_stage)
    if filters.min_amount is not None:
        query = query.filter(FundingRequest.amount >= filters.min_amount)
    if filters.max_amount is not None:
        query = query.filter(FundingRequest.amount <= filters.max_amount)

    total = query.count()
    items = (
        query.order_by(FundingRequest.created_at.desc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )
    return items, total


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def update_funding_request(
    db: Session, request_id, actor: Actor, patch: FundingRequestUpdate
) -> FundingRequest:
    """Apply a whitelisted partial update while the request is still open."""
    request = _load(db, request_id)
    ensure_owner_or_admin(request.entrepreneur_id, actor, "update this funding request")
    ensure_open(request.status, "update")

    changes: dict[str, Any] = patch.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No updatable fields were supplied")
    unknown = set(changes) - set(MUTABLE_FUNDING_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    for required in ("amount", "equity", "funding_stage", "investment_type"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be cleared")

    _validate_terms(
        changes.get("amount", request.amount),
        changes.get("equity", request.equity),
    )
    for field, value in changes.items():
        setattr(request, field, value)
    request.valuation = implied_valuation(request.amount, request.equity)
    request.updated_at = datetime.utcnow()

    _commit(db, request)
    logger.info("Funding request %s updated by %s: %s", request.id, actor.id, sorted(changes))
    return request


def withdraw_funding_request(db: Session, request_id, actor: Actor) -> FundingRequest:
    """Move an open request to withdrawn. Terminal, and not repeatable."""
    request = _load(db, request_id)
    ensure_owner_or_admin(request.entrepreneur_id, actor, "withdraw this funding request")
    request.status = ensure_transition(request.status, FundingStatus.WITHDRAWN).value
    request.updated_at = datetime.utcnow()

    idea = request.idea
    if idea is not None and idea.status == IDEA_STATUS_FUNDING_REQUESTED:
        idea.status = IDEA_STATUS_ACTIVE

    _commit(db, request)
    logger.info("Funding request %s withdrawn by %s", request.id, actor.id)
    return request


def _open_negotiation(db: Session, request: FundingRequest) -> None:
    """pending → negotiated, guarded on the stored status."""
    ensure_transition(FundingStatus.PENDING, FundingStatus.NEGOTIATED)
    now = datetime.utcnow()
    rows = (
        db.query(FundingRequest)
        .filter(
            FundingRequest.id == request.id,
            FundingRequest.status == FundingStatus.PENDING.value,
        )
        .update(
            {
                FundingRequest.status: FundingStatus.NEGOTIATED.value,
                FundingRequest.version: FundingRequest.version + 1,
                FundingRequest.updated_at: now,
            },
            synchronize_session=False,
        )
    )
    if rows:
        logger.info("Funding request %s moved to negotiated", request.id)
        return

    # Someone else changed the status first. Still fine if it is open.
    current = (
        db.query(FundingRequest.status).filter(FundingRequest.id == request.id).scalar()
    )
    if current not in _OPEN_VALUES:
        db.rollback()
        raise InvalidStateError(f"Cannot negotiate on a funding request that is {current}")


def append_negotiation_entry(
    db: Session, request_id, actor: Actor, payload: NegotiationEntryCreate
) -> FundingRequest:
    """Append a message/counter-proposal and return the request with its full log.

    The first investor entry on a pending request opens the negotiation.
    """
    request = _load(db, request_id)
    ensure_can_negotiate(request.entrepreneur_id, actor)
    ensure_open(request.status, "negotiate on")

    append_entry(
        db,
        request,
        author_id=actor.id,
        author_role=actor.role,
        message=payload.message,
        proposed_amount=payload.proposed_amount,
        proposed_equity=payload.proposed_equity,
    )
    db.flush()

    if actor.is_investor and request.status == FundingStatus.PENDING.value:
        _open_negotiation(db, request)

    db.commit()
    db.refresh(request)
    return request


def record_view(db: Session, request_id, actor: Actor) -> FundingRequest:
    """Remember that an investor looked at a request. Idempotent."""
    ensure_role(actor, ROLE_INVESTOR, action="record funding request views")
    request = _load(db, request_id)

    seen = (
        db.query(FundingRequestView.id)
        .filter(
            FundingRequestView.funding_request_id == request.id,
            FundingRequestView.investor_id == actor.id,
        )
        .first()
    )
    if seen is None:
        db.add(FundingRequestView(funding_request_id=request.id, investor_id=actor.id))
        try:
            db.commit()
        except IntegrityError:
            # Same investor, concurrent call: the unique row already exists.
            db.rollback()
            logger.debug("View of %s by %s already recorded", request.id, actor.id)

    db.refresh(request)
    return request


def decide_funding_request(
    db: Session, request_id, actor: Actor, decision: FundingDecision
) -> FundingRequest:
    """Accept or decline an open request (investor or admin).

    Only one decision can ever be recorded; a losing concurrent caller gets
    InvalidStateError.
    """
    ensure_role(actor, ROLE_INVESTOR, ROLE_ADMIN, action="accept or decline funding requests")
    request = _load(db, request_id)
    target = ensure_transition(request.status, decision.decision)

    now = datetime.utcnow()
    values: dict[Any, Any] = {
        FundingRequest.status: target.value,
        FundingRequest.decided_by: actor.id,
        FundingRequest.decided_at: now,
        FundingRequest.updated_at: now,
        FundingRequest.version: FundingRequest.version + 1,
    }
    final_amount = decision.final_amount or request.amount
    final_equity = decision.final_equity or request.equity
    if target is FundingStatus.ACCEPTED:
        values.update(
            {
                FundingRequest.accepted_by: actor.id,
                FundingRequest.accepted_at: now,
                FundingRequest.final_amount: final_amount,
                FundingRequest.final_equity: final_equity,
                FundingRequest.conditions: decision.conditions,
            }
        )

    rows = (
        db.query(FundingRequest)
        .filter(
            FundingRequest.id == request.id,
            FundingRequest.status.in_(_OPEN_VALUES),
            FundingRequest.accepted_by.is_(None),
        )
        .update(values, synchronize_session=False)
    )
    if not rows:
        db.rollback()
        logger.warning("Decision on funding request %s lost to a concurrent decision", request.id)
        raise InvalidStateError("This funding request has already been decided")

    if actor.is_investor:
        if target is FundingStatus.ACCEPTED:
            note = f"Investment accepted. Final terms: ${final_amount:,.0f} for {final_equity:g}% equity"
        else:
            note = "Investment declined."
            if decision.reason:
                note += f" Reason: {decision.reason}"
        append_entry(db, request, author_id=actor.id, author_role=ROLE_INVESTOR, message=note)

    if target is FundingStatus.ACCEPTED and request.idea is not None:
        request.idea.status = IDEA_STATUS_FUNDED

    db.commit()
    db.refresh(request)
    logger.info("Funding request %s %s by %s %s", request.id, target.value, actor.role, actor.id)
    return request


def funding_stats(db: Session, actor: Actor) -> dict[str, int | float]:
    """Aggregate numbers for the caller's dashboard."""
    if actor.is_entrepreneur:
        requests = db.query(FundingRequest).filter(FundingRequest.entrepreneur_id == actor.id).all()
        accepted = [r for r in requests if r.status == FundingStatus.ACCEPTED.value]
        stats: dict[str, int | float] = {
            "totalRequests": len(requests),
            "totalAmountRequested": sum(r.amount for r in requests),
            "totalAmountReceived": sum((r.final_amount or r.amount) for r in accepted),
            "averageEquityOffered": (
                sum(r.equity for r in requests) / len(requests) if requests else 0.0
            ),
        }
        for status in FundingStatus:
            stats[f"{status.value}Requests"] = sum(1 for r in requests if r.status == status.value)
        return stats

    if actor.is_investor:
        total = db.query(func.count(FundingRequest.id)).scalar() or 0
        viewed = (
            db.query(func.count(FundingRequestView.id))
            .filter(FundingRequestView.investor_id == actor.id)
            .scalar()
            or 0
        )
        negotiating = (
            db.query(func.count(func.distinct(NegotiationEntry.funding_request_id)))
            .filter(NegotiationEntry.author_id == actor.id)
            .scalar()
            or 0
        )
        accepted = (
            db.query(func.count(FundingRequest.id))
            .filter(FundingRequest.accepted_by == actor.id)
            .scalar()
            or 0
        )
        return {
            "totalAvailableRequests": total,
            "viewedRequests": viewed,
            "unviewedRequests": max(total - viewed, 0),
            "negotiatingRequests": negotiating,
            "acceptedRequests": accepted,
        }

    rows = (
        db.query(FundingRequest.status, func.count(FundingRequest.id))
        .group_by(FundingRequest.status)
        .all()
    )
    counts = dict(rows)
    stats = {"totalRequests": sum(counts.values())}
    for status in FundingStatus:
        stats[f"{status.value}Requests"] = counts.get(status.value, 0)
    return stats


def _pipeline_stage(
    request: FundingRequest, actor: Actor, viewed: set, negotiated: set
) -> Optional[str]:
    """Where `request` sits in the investor's pipeline, or None if it has left it."""
    if actor.owns(request.accepted_by):
        return "accepted"
    if request.status == FundingStatus.DECLINED.value and actor.owns(request.decided_by):
        return "declined"
    if request.id in negotiated:
        return "negotiating" if request.status == FundingStatus.NEGOTIATED.value else None
    if request.status not in _OPEN_VALUES:
        return None
    if request.id in viewed:
        return "viewed"
    if request.status == FundingStatus.PENDING.value:
        return "new"
    return None


def investor_pipeline(
    db: Session, actor: Actor, stage: Optional[str] = None
) -> tuple[dict[str, list[FundingRequest]], dict[str, int | float]]:
    """Group the requests an investor is dealing with by pipeline stage.

    Stages:
      new          pending, not yet viewed or answered by this investor
      viewed       open, viewed but not answered
      negotiating  negotiated, with at least one entry from this investor
      accepted     accepted by this investor
      declined     declined by this investor

    With `stage` set, only that group is populated.
    """
    ensure_role(actor, ROLE_INVESTOR, action="view an investor pipeline")
    if stage is not None and stage not in PIPELINE_STAGES:
        raise ValidationError(f"Unknown pipeline stage {stage!r}")

    viewed = {
        row[0]
        for row in db.query(FundingRequestView.funding_request_id)
        .filter(FundingRequestView.investor_id == actor.id)
        .all()
    }
    negotiated = {
        row[0]
        for row in db.query(NegotiationEntry.funding_request_id)
        .filter(NegotiationEntry.author_id == actor.id)
        .distinct()
        .all()
    }

    conditions = [
        FundingRequest.status == FundingStatus.PENDING.value,
        FundingRequest.accepted_by == actor.id,
        FundingRequest.decided_by == actor.id,
    ]
    touched = viewed | negotiated
    if touched:
        conditions.append(FundingRequest.id.in_(touched))
    candidates = (
        db.query(FundingRequest)
        .filter(or_(*conditions))
        .order_by(FundingRequest.created_at.desc())
        .all()
    )

    pipeline: dict[str, list[FundingRequest]] = {name: [] for name in PIPELINE_STAGES}
    for request in candidates:
        placed = _pipeline_stage(request, actor, viewed, negotiated)
        if placed is None or (stage is not None and placed != stage):
            continue
        pipeline[placed].append(request)

    stats: dict[str, int | float] = {name: len(items) for name, items in pipeline.items()}
    stats["total"] = sum(len(items) for items in pipeline.values())
    stats["totalInvested"] = sum((r.final_amount or r.amount) for r in pipeline["accepted"])
    logger.debug("Pipeline for investor %s: %s", actor.id, stats)
    return pipeline, stats
