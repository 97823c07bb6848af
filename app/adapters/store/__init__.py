"""Backing store adapters.

The fetch queue depends on ``AbstractBackingStore`` only, so the simulated
store can be replaced by a real database client or a faulty test double.
"""
