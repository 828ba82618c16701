"""Daily REST API adapters."""

from .client import DailyApiClient, DailyApiError
from .tokens import generate_meeting_token

__all__ = ["DailyApiClient", "DailyApiError", "generate_meeting_token"]
