# Schemas package
from .auth_schema import AuthResponse, LoginRequest, SignupRequest, UserPublic
from .base import ErrorResponse
from .funding_schema import (
    FundingDecision,
    FundingRequestCreate,
    FundingRequestEnvelope,
    FundingRequestFilters,
    FundingRequestListResponse,
    FundingRequestRecord,
    FundingRequestUpdate,
    FundingStatsResponse,
    NegotiationEntryCreate,
    NegotiationEntryRecord,
)
from .idea_schema import IdeaInput, IdeaListResponse, IdeaRecord, IdeaResponse
from .ideathon_schema import (
    FinalSubmissionInput,
    RegistrationCreate,
    RegistrationEnvelope,
    RegistrationRecord,
)

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "FinalSubmissionInput",
    "FundingDecision",
    "FundingRequestCreate",
    "FundingRequestEnvelope",
    "FundingRequestFilters",
    "FundingRequestListResponse",
    "FundingRequestRecord",
    "FundingRequestUpdate",
    "FundingStatsResponse",
    "IdeaInput",
    "IdeaListResponse",
    "IdeaRecord",
    "IdeaResponse",
    "LoginRequest",
    "NegotiationEntryCreate",
    "NegotiationEntryRecord",
    "RegistrationCreate",
    "RegistrationEnvelope",
    "RegistrationRecord",
    "SignupRequest",
    "UserPublic",
]
