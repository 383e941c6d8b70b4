"""SQLAlchemy ORM models used by the API layer."""

from .link import LinkModel
from .audit import LinkAuditEntryModel
from .takedown import TakedownRequestModel
from .rate_limit import RateLimitWindowModel

__all__ = [
    "LinkModel",
    "LinkAuditEntryModel",
    "TakedownRequestModel",
    "RateLimitWindowModel",
]
