"""Webhook receiver adapters.

Provides the HTTP endpoints the provider calls back into:
- Receive signed recording events
- Answer the provider's verification probe
- Expose health and diagnostic probes for operators
"""
