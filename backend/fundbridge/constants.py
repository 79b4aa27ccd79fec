"""Centralized constants shared across models, services and routes.

This module is the SINGLE SOURCE OF TRUTH for user roles, funding
terms enums, request statuses and ideathon progress labels. The
frontend mirrors these values, so changes here must be coordinated.
"""

from __future__ import annotations

# ── User roles ──────────────────────────────────────────────────────────
ROLE_ENTREPRENEUR = "entrepreneur"
ROLE_INVESTOR = "investor"
ROLE_ADMIN = "admin"

# Only these two roles can author negotiation entries.
NEGOTIATION_AUTHOR_ROLES: frozenset[str] = frozenset({ROLE_ENTREPRENEUR, ROLE_INVESTOR})

# ── Funding terms ───────────────────────────────────────────────────────
FUNDING_STAGES: list[str] = [
    "seed",
    "series_a",
    "series_b",
    "series_c",
    "bridge",
    "other",
]
DEFAULT_FUNDING_STAGE = "seed"

INVESTMENT_TYPES: list[str] = [
    "equity",
    "convertible_note",
    "safe",
    "revenue_share",
    "other",
]
DEFAULT_INVESTMENT_TYPE = "equity"

MAX_EQUITY_PERCENT: float = 100.0
# Upper bound for any money figure (USD). Keeps implied valuations finite.
MAX_FUNDING_AMOUNT: float = 1e12
MAX_MESSAGE_LENGTH: int = 2000

# Fields an owner may edit while a request is open.
# Anything else in an update body is rejected at the schema layer.
MUTABLE_FUNDING_FIELDS: tuple[str, ...] = (
    "amount",
    "equity",
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
    "funding_stage",
    "investment_type",
    "response_deadline",
)

# ── Idea lifecycle (as seen by the funding workflow) ────────────────────
IDEA_STATUS_ACTIVE = "active"
IDEA_STATUS_FUNDING_REQUESTED = "funding_requested"
IDEA_STATUS_FUNDED = "funded"

# ── Listing ─────────────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 100

# ── Investor pipeline ───────────────────────────────────────────────────
PIPELINE_STAGES: tuple[str, ...] = ("new", "viewed", "negotiating", "accepted", "declined")

# ── Ideathon registrations ──────────────────────────────────────────────
PROGRESS_READY = "Ready for Submission"

FINAL_SUBMISSION_DRAFT = "draft"
FINAL_SUBMISSION_SUBMITTED = "submitted"
