"""Ingestion layer.

Bridges service domain events into store actions (and UI intents back into
service operations). Only :mod:`walletcore.state` merges what arrives here.
"""

__all__: list[str] = []
