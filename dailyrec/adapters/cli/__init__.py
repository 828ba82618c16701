"""Command-line interface adapters.

Provides the room, recording and webhook-subscription commands of the
dailyrec CLI.
"""
