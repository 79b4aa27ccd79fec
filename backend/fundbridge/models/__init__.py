from .funding_request import FundingRequest, FundingRequestView, NegotiationEntry
from .idea import Idea
from .ideathon import Ideathon, IdeathonRegistration
from .user import User

__all__ = [
    "FundingRequest",
    "FundingRequestView",
    "Idea",
    "Ideathon",
    "IdeathonRegistration",
    "NegotiationEntry",
    "User",
]
