"""State layer.

Single source of truth for how pushed rows, simulated samples and local
optimistic transitions are merged into an order's in-memory view.
"""
