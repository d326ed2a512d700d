"""Webhook pipeline that dispatches changelog updates for releases.

This package provides:
- GitHub webhook intake with HMAC-SHA256 signature verification
- LLM-based classification of release and tag payloads
- An idempotency ledger keyed by (repository, version, event kind)
- Task prompt synthesis and Devin session dispatch
- A per-delivery state machine and observability events
"""
