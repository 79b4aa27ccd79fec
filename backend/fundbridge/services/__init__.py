from .authorization import Actor
from .errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from .funding_service import (
    append_negotiation_entry,
    create_funding_request,
    decide_funding_request,
    funding_stats,
    get_funding_request,
    list_funding_requests,
    record_view,
    update_funding_request,
    withdraw_funding_request,
)
from .idea_service import create_idea, get_owned_idea
from .ideathon_service import get_registration, register_for_ideathon, submit_final_project

__all__ = [
    "Actor",
    "AuthorizationError",
    "InvalidStateError",
    "NotFoundError",
    "ServiceError",
    "ValidationError",
    "append_negotiation_entry",
    "create_funding_request",
    "create_idea",
    "decide_funding_request",
    "funding_stats",
    "get_funding_request",
    "get_owned_idea",
    "get_registration",
    "list_funding_requests",
    "record_view",
    "register_for_ideathon",
    "submit_final_project",
    "update_funding_request",
    "withdraw_funding_request",
]
