"""Funding request routes — creation, negotiation and lifecycle of funding asks.

Endpoints:
  POST   /api/funding-requests                 — Create a request (entrepreneur)
  GET    /api/funding-requests                 — List visible requests
  GET    /api/funding-requests/stats           — Dashboard statistics
  GET    /api/funding-requests/investor/pipeline — Investor deal pipeline by stage
  GET    /api/funding-requests/{id}            — Full record with negotiation history
  PUT    /api/funding-requests/{id}            — Edit terms/narrative (owner or admin)
  DELETE /api/funding-requests/{id}            — Withdraw (owner or admin)
  POST   /api/funding-requests/{id}/negotiate  — Append a message / counter-proposal
  PUT    /api/funding-requests/{id}/view       — Mark as viewed (investor)
  PUT    /api/funding-requests/{id}/decision   — Accept or decline (investor or admin)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..models.funding_request import FundingRequest, NegotiationEntry
from ..schemas.funding_schema import (
    FundingDecision,
    FundingRequestCreate,
    FundingRequestEnvelope,
    FundingRequestFilters,
    FundingRequestListResponse,
    FundingRequestRecord,
    FundingRequestUpdate,
    FundingStageLiteral,
    FundingStatsResponse,
    InvestorPipeline,
    InvestorPipelineResponse,
    NegotiationEntryCreate,
    NegotiationEntryRecord,
    Pagination,
    PipelineStageLiteral,
    PipelineStats,
    StatusLiteral,
)
from ..services import funding_service
from ..services.auth_dependency import get_current_actor
from ..services.authorization import Actor
from ..services.negotiation_log import format_entry, implied_valuation

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/funding-requests",
    tags=["Funding Requests"],
)

_COPIED_FIELDS = (
    "amount",
    "equity",
    "valuation",
    "funding_stage",
    "investment_type",
    "status",
    "message",
    "team_size",
    "business_plan",
    "current_revenue",
    "previous_funding",
    "revenue_model",
    "target_market",
    "competitive_advantage",
    "customer_traction",
    "financial_projections",
    "use_of_funds",
    "timeline",
    "milestones",
    "risk_factors",
    "exit_strategy",
    "intellectual_property",
    "contact_phone",
    "contact_email",
    "company_website",
    "linkedin_profile",
    "additional_documents",
    "response_deadline",
    "accepted_at",
    "decided_at",
    "final_amount",
    "final_equity",
    "conditions",
    "version",
    "created_at",
    "updated_at",
)


# ── Helpers ──────────────────────────────────────────────────────────────

def _entry_to_record(entry: NegotiationEntry) -> NegotiationEntryRecord:
    return NegotiationEntryRecord(
        id=entry.id,
        author_id=str(entry.author_id),
        author_role=entry.author_role,
        message=entry.message or "",
        proposed_amount=entry.proposed_amount,
        proposed_equity=entry.proposed_equity,
        implied_valuation=implied_valuation(entry.proposed_amount, entry.proposed_equity),
        display_text=format_entry(entry),
        created_at=entry.created_at,
    )


def _record_to_response(request: FundingRequest) -> FundingRequestRecord:
    """Convert a FundingRequest ORM instance to its API record."""
    views = request.views or []
    return FundingRequestRecord(
        id=str(request.id),
        idea_id=str(request.idea_id),
        entrepreneur_id=str(request.entrepreneur_id),
        accepted_by=str(request.accepted_by) if request.accepted_by else None,
        decided_by=str(request.decided_by) if request.decided_by else None,
        viewed_by=[str(view.investor_id) for view in views],
        last_viewed_at=max((view.viewed_at for view in views), default=None),
        negotiation_history=[_entry_to_record(e) for e in request.negotiation_history],
        **{field: getattr(request, field) for field in _COPIED_FIELDS},
    )


def _envelope(request: FundingRequest, message: str) -> FundingRequestEnvelope:
    return FundingRequestEnvelope(message=message, data=_record_to_response(request))


@contextmanager
def _persistence_errors(db: Session, action: str):
    """Turn storage faults into a 500 after rolling the session back."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persistence failure while %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error {action}: {exc}",
        ) from exc


def _filters(
    status_filter: Optional[StatusLiteral] = Query(None, alias="status"),
    funding_stage: Optional[FundingStageLiteral] = Query(None, alias="fundingStage"),
    min_amount: Optional[float] = Query(None, ge=0, alias="minAmount"),
    max_amount: Optional[float] = Query(None, ge=0, alias="maxAmount"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> FundingRequestFilters:
    return FundingRequestFilters(
        status=status_filter,
        funding_stage=funding_stage,
        min_amount=min_amount,
        max_amount=max_amount,
        page=page,
        limit=limit,
    )


# ── Routes ───────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=FundingRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a funding request",
)
def create_funding_request(
    payload: FundingRequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "creating funding request"):
        request = funding_service.create_funding_request(db, actor, payload)
    return _envelope(request, "Funding request created successfully")


@router.get(
    "",
    response_model=FundingRequestListResponse,
    summary="List funding requests visible to the caller",
)
def list_funding_requests(
    filters: FundingRequestFilters = Depends(_filters),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestListResponse:
    with _persistence_errors(db, "fetching funding requests"):
        items, total = funding_service.list_funding_requests(db, actor, filters)
        data = [_record_to_response(r) for r in items]
    return FundingRequestListResponse(
        data=data,
        pagination=Pagination(
            current=filters.page,
            pages=funding_service.page_count(total, filters.limit),
            total=total,
            limit=filters.limit,
        ),
    )


@router.get(
    "/stats",
    response_model=FundingStatsResponse,
    summary="Funding statistics for the caller's dashboard",
)
def get_funding_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingStatsResponse:
    with _persistence_errors(db, "fetching funding statistics"):
        stats = funding_service.funding_stats(db, actor)
    return FundingStatsResponse(data=stats)


@router.get(
    "/investor/pipeline",
    response_model=InvestorPipelineResponse,
    summary="The calling investor's deal pipeline, grouped by stage",
)
def get_investor_pipeline(
    stage: Optional[PipelineStageLiteral] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> InvestorPipelineResponse:
    with _persistence_errors(db, "fetching investor pipeline"):
        groups, stats = funding_service.investor_pipeline(db, actor, stage)
        pipeline = InvestorPipeline(
            **{name: [_record_to_response(r) for r in items] for name, items in groups.items()}
        )
    return InvestorPipelineResponse(data=pipeline, stats=PipelineStats(**stats))


@router.get(
    "/{request_id}",
    response_model=FundingRequestEnvelope,
    summary="Get a funding request with its negotiation history",
)
def get_funding_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "fetching funding request"):
        request = funding_service.get_funding_request(db, request_id, actor)
        return _envelope(request, "Funding request retrieved")


@router.put(
    "/{request_id}",
    response_model=FundingRequestEnvelope,
    summary="Update terms or narrative of an open request",
)
def update_funding_request(
    request_id: str,
    patch: FundingRequestUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "updating funding request"):
        request = funding_service.update_funding_request(db, request_id, actor, patch)
    return _envelope(request, "Funding request updated successfully")


@router.delete(
    "/{request_id}",
    response_model=FundingRequestEnvelope,
    summary="Withdraw a funding request",
)
def withdraw_funding_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "withdrawing funding request"):
        request = funding_service.withdraw_funding_request(db, request_id, actor)
    return _envelope(request, "Funding request withdrawn successfully")


@router.post(
    "/{request_id}/negotiate",
    response_model=FundingRequestEnvelope,
    summary="Append a negotiation message or counter-proposal",
)
def negotiate(
    request_id: str,
    payload: NegotiationEntryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "sending negotiation message"):
        request = funding_service.append_negotiation_entry(db, request_id, actor, payload)
    return _envelope(request, "Negotiation message sent successfully")


@router.put(
    "/{request_id}/view",
    response_model=FundingRequestEnvelope,
    summary="Mark a funding request as viewed",
)
def mark_as_viewed(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "marking funding request as viewed"):
        request = funding_service.record_view(db, request_id, actor)
    return _envelope(request, "Funding request marked as viewed")


@router.put(
    "/{request_id}/decision",
    response_model=FundingRequestEnvelope,
    summary="Accept or decline a funding request",
)
def decide(
    request_id: str,
    decision: FundingDecision,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FundingRequestEnvelope:
    with _persistence_errors(db, "recording funding decision"):
        request = funding_service.decide_funding_request(db, request_id, actor, decision)
    return _envelope(request, f"Funding request {decision.decision} successfully")
