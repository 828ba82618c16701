"""Test suite for dailyrec.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Exercised against mocked HTTP transports and temp directories
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - In-memory implementations of RecordingLookupPort and EventLogPort
"""
