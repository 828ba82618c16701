"""Error taxonomy for the dailyrec webhook receiver.

Each error maps to a distinct outcome at the HTTP boundary:

- AuthenticationFailure: bad or missing signature, answered with 401
- MalformedPayload: body could not be decoded into an event, answered with 500
- EnrichmentFailure: an upstream call failed, recovered locally on the
  webhook path
- ConfigurationError: fatal at startup, the process exits before binding
"""


class DailyRecError(Exception):
    """Base class for all dailyrec errors."""


class AuthenticationFailure(DailyRecError):
    """Raised when a webhook delivery fails signature verification."""


class MalformedPayload(DailyRecError):
    """Raised when a webhook body is not a decodable event."""


class EnrichmentFailure(DailyRecError):
    """Raised when an upstream provider call fails."""


class ConfigurationError(DailyRecError):
    """Raised when required configuration is missing or invalid."""


__all__ = [
    "AuthenticationFailure",
    "ConfigurationError",
    "DailyRecError",
    "EnrichmentFailure",
    "MalformedPayload",
]
