"""External adapters for dailyrec.

This package contains all external dependencies (Daily REST API, HTTP
server, filesystem) and provides implementations of the core port
interfaces.

Adapter Organization:

- daily/: Daily REST API client and meeting-token signing
- eventlog/: Append-only event log file
- webhook/: HTTP webhook receiver for provider callbacks
- session/: JSON session files shared between CLI invocations
- cli/: Command-line commands
"""
