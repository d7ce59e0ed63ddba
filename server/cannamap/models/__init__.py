from cannamap.models.activity_log import ActivityLog
from cannamap.models.base import Base
from cannamap.models.location import Location
from cannamap.models.review import Review
from cannamap.models.user import User
from cannamap.models.visit import Visit
from cannamap.models.vote import Vote, VoteType

__all__ = [
    "ActivityLog",
    "Base",
    "Location",
    "Review",
    "User",
    "Visit",
    "Vote",
    "VoteType",
]
