"""Backend layer - session source and data-access interfaces.

Implementations:
- memory: scripted session source and dict-backed data access
"""

from venuegate.backend.interface import (
    DataAccess,
    SessionCallback,
    SessionSource,
    Subscription,
    VenueActivity,
)

__all__ = [
    "DataAccess",
    "SessionCallback",
    "SessionSource",
    "Subscription",
    "VenueActivity",
]
