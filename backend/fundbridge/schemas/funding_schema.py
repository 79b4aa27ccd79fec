"""Request/response schemas for the funding request API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from ..constants import DEFAULT_PAGE_SIZE, MAX_FUNDING_AMOUNT, MAX_PAGE_SIZE
from .base import ApiModel, StrictInput

FundingStageLiteral = Literal["seed", "series_a", "series_b", "series_c", "bridge", "other"]
InvestmentTypeLiteral = Literal["equity", "convertible_note", "safe", "revenue_share", "other"]
StatusLiteral = Literal["pending", "negotiated", "accepted", "declined", "withdrawn"]
PipelineStageLiteral = Literal["new", "viewed", "negotiating", "accepted", "declined"]


class _NarrativeFields(StrictInput):
    """Free-text fields the platform stores but never interprets."""

    message: Optional[str] = Field(None, max_length=2000)
    business_plan: Optional[str] = None
    revenue_model: Optional[str] = None
    target_market: Optional[str] = None
    competitive_advantage: Optional[str] = None
    customer_traction: Optional[str] = None
    financial_projections: Optional[str] = None
    use_of_funds: Optional[str] = None
    timeline: Optional[str] = None
    milestones: Optional[str] = None
    risk_factors: Optional[str] = None
    exit_strategy: Optional[str] = None
    intellectual_property: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=64)
    contact_email: Optional[EmailStr] = None
    company_website: Optional[str] = Field(None, max_length=1024)
    linkedin_profile: Optional[str] = Field(None, max_length=1024)
    additional_documents: Optional[str] = None
    team_size: Optional[int] = Field(None, ge=1)
    current_revenue: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    previous_funding: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    response_deadline: Optional[datetime] = None


class FundingRequestCreate(_NarrativeFields):
    idea_id: str = Field(..., min_length=1, description="Idea the capital is requested for")
    amount: float = Field(
        ..., gt=0, le=MAX_FUNDING_AMOUNT, allow_inf_nan=False, description="Requested amount in USD"
    )
    equity: float = Field(
        ..., gt=0, le=100, allow_inf_nan=False, description="Equity offered, in percent"
    )
    funding_stage: FundingStageLiteral = "seed"
    investment_type: InvestmentTypeLiteral = "equity"


class FundingRequestUpdate(_NarrativeFields):
    """Partial update. Only fields present in the body are applied."""

    amount: Optional[float] = Field(None, gt=0, le=MAX_FUNDING_AMOUNT, allow_inf_nan=False)
    equity: Optional[float] = Field(None, gt=0, le=100, allow_inf_nan=False)
    funding_stage: Optional[FundingStageLiteral] = None
    investment_type: Optional[InvestmentTypeLiteral] = None


class NegotiationEntryCreate(StrictInput):
    message: Optional[str] = None
    proposed_amount: Optional[float] = Field(None, le=MAX_FUNDING_AMOUNT, allow_inf_nan=False)
    proposed_equity: Optional[float] = Field(None, allow_inf_nan=False)


class FundingDecision(StrictInput):
    decision: Literal["accepted", "declined"]
    reason: Optional[str] = Field(None, max_length=2000)
    final_amount: Optional[float] = Field(None, gt=0, le=MAX_FUNDING_AMOUNT, allow_inf_nan=False)
    final_equity: Optional[float] = Field(None, gt=0, le=100, allow_inf_nan=False)
    conditions: Optional[str] = None


class FundingRequestFilters(ApiModel):
    status: Optional[StatusLiteral] = None
    funding_stage: Optional[FundingStageLiteral] = None
    min_amount: Optional[float] = Field(None, ge=0)
    max_amount: Optional[float] = Field(None, ge=0)
    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)


# ── Responses ────────────────────────────────────────────────────────────

class NegotiationEntryRecord(ApiModel):
    id: int
    author_id: str
    author_role: str
    message: str
    proposed_amount: Optional[float] = None
    proposed_equity: Optional[float] = None
    implied_valuation: Optional[float] = None
    display_text: str
    created_at: datetime


class FundingRequestRecord(ApiModel):
    id: str
    idea_id: str
    entrepreneur_id: str
    amount: float
    equity: float
    valuation: Optional[float] = None
    funding_stage: str
    investment_type: str
    status: StatusLiteral

    message: Optional[str] = None
    team_size: Optional[int] = None
    business_plan: Optional[str] = None
    current_revenue: Optional[float] = None
    previous_funding: Optional[float] = None
    revenue_model: Optional[str] = None
    target_market: Optional[str] = None
    competitive_advantage: Optional[str] = None
    customer_traction: Optional[str] = None
    financial_projections: Optional[str] = None
    use_of_funds: Optional[str] = None
    timeline: Optional[str] = None
    milestones: Optional[str] = None
    risk_factors: Optional[str] = None
    exit_strategy: Optional[str] = None
    intellectual_property: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    company_website: Optional[str] = None
    linkedin_profile: Optional[str] = None
    additional_documents: Optional[str] = None

    response_deadline: Optional[datetime] = None
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    final_amount: Optional[float] = None
    final_equity: Optional[float] = None
    conditions: Optional[str] = None

    viewed_by: list[str] = Field(default_factory=list)
    last_viewed_at: Optional[datetime] = None
    negotiation_history: list[NegotiationEntryRecord] = Field(default_factory=list)

    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class FundingRequestEnvelope(ApiModel):
    success: bool = True
    message: Optional[str] = None
    data: FundingRequestRecord


class Pagination(ApiModel):
    current: int
    pages: int
    total: int
    limit: int


class FundingRequestListResponse(ApiModel):
    success: bool = True
    data: list[FundingRequestRecord] = Field(default_factory=list)
    pagination: Pagination


class FundingStatsResponse(ApiModel):
    success: bool = True
    data: dict[str, int | float]


class PipelineStats(ApiModel):
    total: int = 0
    new: int = 0
    viewed: int = 0
    negotiating: int = 0
    accepted: int = 0
    declined: int = 0
    total_invested: float = 0.0


class InvestorPipeline(ApiModel):
    """An investor's requests grouped by how far the deal has progressed."""

    new: list[FundingRequestRecord] = Field(default_factory=list)
    viewed: list[FundingRequestRecord] = Field(default_factory=list)
    negotiating: list[FundingRequestRecord] = Field(default_factory=list)
    accepted: list[FundingRequestRecord] = Field(default_factory=list)
    declined: list[FundingRequestRecord] = Field(default_factory=list)


class InvestorPipelineResponse(ApiModel):
    success: bool = True
    data: InvestorPipeline
    stats: PipelineStats
