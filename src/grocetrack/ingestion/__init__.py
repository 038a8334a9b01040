"""Ingestion layer.

Adapters that turn loosely-typed records from the hosted store into the
engine's typed orders and patches.
"""

__all__: list[str] = []
