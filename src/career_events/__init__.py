from .config import RuntimeConfig
from .models import EventItem, FetchParams, ProviderHealthRecord, RejectedItem

__version__ = "0.1.0"

__all__ = [
    "EventItem",
    "FetchParams",
    "ProviderHealthRecord",
    "RejectedItem",
    "RuntimeConfig",
]
