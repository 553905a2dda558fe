from .cache_record import CacheRecord
from .user_profile import UserExternalProfile
from .usage_event import ExternalDataUsageEvent

__all__ = [
    "CacheRecord",
    "UserExternalProfile",
    "ExternalDataUsageEvent",
]
