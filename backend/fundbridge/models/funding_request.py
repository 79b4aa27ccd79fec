"""Funding request, its negotiation log and investor view tracking."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship

from ..constants import DEFAULT_FUNDING_STAGE, DEFAULT_INVESTMENT_TYPE
from ..database import Base
from .idea import GUID


class FundingRequest(Base):
    __tablename__ = "funding_requests"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    idea_id = Column(GUID(), ForeignKey("ideas.id"), nullable=False, index=True)
    entrepreneur_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)

    # Terms
    amount = Column(Float, nullable=False)
    equity = Column(Float, nullable=False)
    valuation = Column(Float, nullable=True)
    funding_stage = Column(String(32), nullable=False, default=DEFAULT_FUNDING_STAGE)
    investment_type = Column(String(32), nullable=False, default=DEFAULT_INVESTMENT_TYPE)
    message = Column(Text, nullable=True)
    team_size = Column(Integer, nullable=True)

    # Business details
    business_plan = Column(Text, nullable=True)
    current_revenue = Column(Float, nullable=True)
    previous_funding = Column(Float, nullable=True, default=0.0)
    revenue_model = Column(Text, nullable=True)

    # Market & strategy
    target_market = Column(Text, nullable=True)
    competitive_advantage = Column(Text, nullable=True)
    customer_traction = Column(Text, nullable=True)

    # Financials, timeline, risk
    financial_projections = Column(Text, nullable=True)
    use_of_funds = Column(Text, nullable=True)
    timeline = Column(Text, nullable=True)
    milestones = Column(Text, nullable=True)
    risk_factors = Column(Text, nullable=True)
    exit_strategy = Column(Text, nullable=True)
    intellectual_property = Column(Text, nullable=True)

    # Contact
    contact_phone = Column(String(64), nullable=True)
    contact_email = Column(String(320), nullable=True)
    company_website = Column(String(1024), nullable=True)
    linkedin_profile = Column(String(1024), nullable=True)
    additional_documents = Column(Text, nullable=True)

    # pending | negotiated | accepted | declined | withdrawn
    status = Column(String(16), nullable=False, default="pending", index=True)
    response_deadline = Column(DateTime, nullable=True)

    # Decision
    accepted_by = Column(GUID(), ForeignKey("users.id"), nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    decided_by = Column(GUID(), ForeignKey("users.id"), nullable=True)
    decided_at = Column(DateTime, nullable=True)
    final_amount = Column(Float, nullable=True)
    final_equity = Column(Float, nullable=True)
    conditions = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    idea = relationship("Idea", backref="funding_requests")
    entrepreneur = relationship("User", foreign_keys=[entrepreneur_id])
    negotiation_history = relationship(
        "NegotiationEntry",
        back_populates="funding_request",
        order_by="[NegotiationEntry.created_at, NegotiationEntry.id]",
        lazy="selectin",
        passive_deletes=True,
    )
    views = relationship(
        "FundingRequestView",
        back_populates="funding_request",
        order_by="FundingRequestView.viewed_at",
        lazy="selectin",
        passive_deletes=True,
    )


class NegotiationEntry(Base):
    """One message or counter-proposal. Rows are insert-only."""

    __tablename__ = "negotiation_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    funding_request_id = Column(
        GUID(), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    author_role = Column(String(16), nullable=False)  # entrepreneur | investor
    message = Column(Text, nullable=False, default="")
    proposed_amount = Column(Float, nullable=True)
    proposed_equity = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    funding_request = relationship("FundingRequest", back_populates="negotiation_history")


class FundingRequestView(Base):
    __tablename__ = "funding_request_views"
    __table_args__ = (
        UniqueConstraint("funding_request_id", "investor_id", name="uq_funding_request_view"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    funding_request_id = Column(
        GUID(), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    investor_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    viewed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    funding_request = relationship("FundingRequest", back_populates="views")


@event.listens_for(NegotiationEntry, "before_update")
def _refuse_entry_update(mapper, connection, target):
    raise ValueError("Negotiation entries are immutable once recorded")
