"""Fake implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeRecordingLookupPort: Canned recordings and access links
- FakeEventLogPort: Captured log lines for assertion
"""

from .event_log import FakeEventLogPort
from .lookup import FakeRecordingLookupPort

__all__ = [
    "FakeEventLogPort",
    "FakeRecordingLookupPort",
]
