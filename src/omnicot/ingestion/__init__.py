"""Ingestion layer.

This package turns raw CoT messages delivered by a transport into typed
events (and back), and bridges a transport feed into the marker store.
"""

__all__: list[str] = []
