"""Service-level tests: negotiation log, optimistic locking and decision races."""

import os
import sys
import uuid
from datetime import datetime, timedelta

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fundbridge.database import Base
from fundbridge.models import FundingRequest, Idea, NegotiationEntry, User
from fundbridge.schemas.funding_schema import (
    FundingDecision,
    FundingRequestCreate,
    FundingRequestUpdate,
    NegotiationEntryCreate,
)
from fundbridge.services import funding_service
from fundbridge.services.authorization import Actor
from fundbridge.services.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from fundbridge.services.negotiation_log import (
    append_entry,
    format_entry,
    implied_valuation,
    validate_entry,
)

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_negotiation_log.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _actor(db, role):
    user = User(
        id=uuid.uuid4(),
        email=f"{role}-{uuid.uuid4().hex[:8]}@example.com",
        name=f"Test {role}",
        hashed_password="unused",
        role=role,
    )
    db.add(user)
    db.commit()
    return Actor(id=user.id, role=role)


def _idea(db, owner):
    idea = Idea(
        id=uuid.uuid4(),
        title="Solar microgrids",
        description="Pay-as-you-go solar microgrids for rural clinics",
        category="energy",
        user_id=owner.id,
    )
    db.add(idea)
    db.commit()
    return idea


def _open_request(db, owner, **overrides):
    idea = _idea(db, owner)
    fields = {"idea_id": str(idea.id), "amount": 500000, "equity": 10}
    fields.update(overrides)
    return funding_service.create_funding_request(db, owner, FundingRequestCreate(**fields))


# ===================================================================== #
#  Pure helpers                                                           #
# ===================================================================== #

class TestImpliedValuation:
    def test_rounds_to_whole_dollars(self):
        assert implied_valuation(500000, 15) == 3333333.0

    def test_simple_case(self):
        assert implied_valuation(500000, 10) == 5000000.0

    def test_missing_terms(self):
        assert implied_valuation(None, 10) is None
        assert implied_valuation(500000, None) is None

    def test_overflowing_quotient_is_none(self):
        assert implied_valuation(1e308, 0.001) is None

    def test_largest_allowed_terms_stay_finite(self):
        assert implied_valuation(1e12, 0.001) is not None


class TestValidateEntry:
    def test_message_only(self):
        assert validate_entry("  Interested  ", None, None) == "Interested"

    def test_terms_only(self):
        assert validate_entry(None, 400000, None) == ""

    def test_empty_entry_rejected(self):
        with pytest.raises(ValidationError, match="message or at least one proposed term"):
            validate_entry("   ", None, None)

    def test_long_message_rejected(self):
        with pytest.raises(ValidationError, match="2000"):
            validate_entry("x" * 2001, None, None)

    def test_message_at_limit_accepted(self):
        assert len(validate_entry("x" * 2000, None, None)) == 2000

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValidationError, match="amount"):
            validate_entry("offer", 0, None)

    @pytest.mark.parametrize("equity", [0, -5, 100.5])
    def test_equity_out_of_range_rejected(self, equity):
        with pytest.raises(ValidationError, match="equity"):
            validate_entry("offer", None, equity)

    def test_full_equity_allowed(self):
        validate_entry("offer", None, 100)

    @pytest.mark.parametrize("amount", [1e308, 1e13, float("inf"), float("nan")])
    def test_oversized_or_non_finite_amount_rejected(self, amount):
        with pytest.raises(ValidationError, match="amount"):
            validate_entry("offer", amount, 0.001)

    def test_nan_equity_rejected(self):
        with pytest.raises(ValidationError, match="equity"):
            validate_entry("offer", None, float("nan"))


class TestFormatEntry:
    def test_plain_message(self):
        entry = NegotiationEntry(message="Can we talk?")
        assert format_entry(entry) == "Can we talk?"

    def test_terms_block(self):
        entry = NegotiationEntry(
            message="Would you consider 15%?",
            proposed_amount=500000,
            proposed_equity=15,
        )
        text = format_entry(entry)
        assert text.startswith("Would you consider 15%?\n\nProposed Terms:")
        assert "Amount: $500,000" in text
        assert "Equity: 15%" in text
        assert "Implied Valuation: $3,333,333" in text

    def test_terms_without_message(self):
        entry = NegotiationEntry(message="", proposed_amount=250000)
        assert format_entry(entry) == "Proposed Terms:\nAmount: $250,000"

    def test_overflowing_terms_render_without_valuation(self):
        entry = NegotiationEntry(message="", proposed_amount=1e308, proposed_equity=0.001)
        text = format_entry(entry)
        assert text.startswith("Proposed Terms:")
        assert "Implied Valuation" not in text


# ===================================================================== #
#  Term bounds at the service layer                                       #
# ===================================================================== #

class TestTermBounds:
    def test_create_with_non_finite_amount_rejected(self, db):
        owner = _actor(db, "entrepreneur")
        idea = _idea(db, owner)
        payload = FundingRequestCreate.model_construct(
            idea_id=str(idea.id),
            amount=float("inf"),
            equity=10,
            funding_stage="seed",
            investment_type="equity",
        )
        with pytest.raises(ValidationError, match="Amount"):
            funding_service.create_funding_request(db, owner, payload)
        assert db.query(FundingRequest).count() == 0

    def test_update_with_oversized_amount_rejected(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner)
        with pytest.raises(ValidationError, match="Amount"):
            funding_service.update_funding_request(
                db, request.id, owner, FundingRequestUpdate.model_construct(amount=1e308)
            )
        db.refresh(request)
        assert request.amount == 500000
        assert request.valuation == 5000000


# ===================================================================== #
#  Log behaviour against the database                                     #
# ===================================================================== #

class TestAppendEntry:
    def test_admin_cannot_author_entries(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner)
        with pytest.raises(ValidationError, match="admin"):
            append_entry(db, request, author_id=uuid.uuid4(), author_role="admin", message="hi")

    def test_timestamps_never_go_backwards(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner)
        future = datetime.utcnow() + timedelta(minutes=5)
        db.add(NegotiationEntry(
            funding_request_id=request.id,
            author_id=owner.id,
            author_role="entrepreneur",
            message="clock skew",
            created_at=future,
        ))
        db.commit()

        entry = append_entry(
            db, request, author_id=owner.id, author_role="entrepreneur", message="later"
        )
        db.commit()
        assert entry.created_at >= future

        db.refresh(request)
        history = request.negotiation_history
        assert [e.message for e in history] == ["clock skew", "later"]

    def test_entries_are_immutable(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner, message="Initial pitch")
        entry = request.negotiation_history[0]
        entry.message = "rewritten"
        with pytest.raises(ValueError, match="immutable"):
            db.commit()
        db.rollback()


class TestNegotiationService:
    def test_initial_message_seeds_the_log(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner, message="We are raising a seed round")
        assert len(request.negotiation_history) == 1
        assert request.negotiation_history[0].author_role == "entrepreneur"
        assert request.status == "pending"

    def test_investor_entry_opens_negotiation(self, db):
        owner = _actor(db, "entrepreneur")
        investor = _actor(db, "investor")
        request = _open_request(db, owner)
        version = request.version

        request = funding_service.append_negotiation_entry(
            db, request.id, investor,
            NegotiationEntryCreate(message="Would you consider 15%?", proposed_equity=15),
        )
        assert request.status == "negotiated"
        assert request.version == version + 1
        assert len(request.negotiation_history) == 1

    def test_owner_reply_keeps_pending(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner)
        request = funding_service.append_negotiation_entry(
            db, request.id, owner, NegotiationEntryCreate(message="Deck attached")
        )
        assert request.status == "pending"
        assert len(request.negotiation_history) == 1

    def test_two_investors_can_both_answer(self, db):
        owner = _actor(db, "entrepreneur")
        first = _actor(db, "investor")
        second = _actor(db, "investor")
        request = _open_request(db, owner)
        funding_service.append_negotiation_entry(
            db, request.id, first, NegotiationEntryCreate(message="Interested")
        )
        request = funding_service.append_negotiation_entry(
            db, request.id, second, NegotiationEntryCreate(message="Also interested")
        )
        assert request.status == "negotiated"
        assert [e.message for e in request.negotiation_history] == ["Interested", "Also interested"]

    def test_foreign_entrepreneur_cannot_negotiate(self, db):
        owner = _actor(db, "entrepreneur")
        stranger = _actor(db, "entrepreneur")
        request = _open_request(db, owner)
        with pytest.raises(AuthorizationError):
            funding_service.append_negotiation_entry(
                db, request.id, stranger, NegotiationEntryCreate(message="hello")
            )

    def test_admin_cannot_negotiate(self, db):
        owner = _actor(db, "entrepreneur")
        admin = _actor(db, "admin")
        request = _open_request(db, owner)
        with pytest.raises(AuthorizationError):
            funding_service.append_negotiation_entry(
                db, request.id, admin, NegotiationEntryCreate(message="hello")
            )

    def test_failed_append_leaves_log_untouched(self, db):
        owner = _actor(db, "entrepreneur")
        investor = _actor(db, "investor")
        request = _open_request(db, owner)
        with pytest.raises(ValidationError):
            funding_service.append_negotiation_entry(
                db, request.id, investor, NegotiationEntryCreate(proposed_equity=120)
            )
        db.rollback()
        assert db.query(NegotiationEntry).count() == 0
        assert db.get(FundingRequest, request.id).status == "pending"

    def test_unknown_request_is_not_found(self, db):
        investor = _actor(db, "investor")
        with pytest.raises(NotFoundError):
            funding_service.append_negotiation_entry(
                db, uuid.uuid4(), investor, NegotiationEntryCreate(message="hi")
            )


# ===================================================================== #
#  Concurrency                                                            #
# ===================================================================== #

class TestConcurrentWrites:
    def test_stale_update_is_rejected(self, db):
        owner = _actor(db, "entrepreneur")
        request = _open_request(db, owner)

        other = TestingSessionLocal()
        try:
            # Load the same row in a second session before the first one writes.
            other.get(FundingRequest, request.id)

            funding_service.update_funding_request(
                db, request.id, owner, FundingRequestUpdate(amount=600000)
            )

            with pytest.raises(InvalidStateError, match="modified by someone else"):
                funding_service.update_funding_request(
                    other, request.id, owner, FundingRequestUpdate(equity=12)
                )
        finally:
            other.close()

        db.refresh(request)
        assert request.amount == 600000
        assert request.equity == 10

    def test_only_one_acceptance_wins(self, db):
        owner = _actor(db, "entrepreneur")
        first = _actor(db, "investor")
        second = _actor(db, "investor")
        request = _open_request(db, owner)

        other = TestingSessionLocal()
        try:
            other.get(FundingRequest, request.id)

            funding_service.decide_funding_request(
                db, request.id, first, FundingDecision(decision="accepted")
            )

            with pytest.raises(InvalidStateError, match="already been decided"):
                funding_service.decide_funding_request(
                    other, request.id, second, FundingDecision(decision="accepted")
                )
        finally:
            other.close()

        db.refresh(request)
        assert request.status == "accepted"
        assert request.accepted_by == first.id

    def test_negotiation_after_withdrawal_in_other_session(self, db):
        owner = _actor(db, "entrepreneur")
        investor = _actor(db, "investor")
        request = _open_request(db, owner)

        other = TestingSessionLocal()
        try:
            other.get(FundingRequest, request.id)
            funding_service.withdraw_funding_request(db, request.id, owner)

            with pytest.raises(InvalidStateError):
                funding_service.append_negotiation_entry(
                    other, request.id, investor, NegotiationEntryCreate(message="Still keen")
                )
        finally:
            other.close()

        assert db.query(NegotiationEntry).count() == 0
