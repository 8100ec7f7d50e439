"""Caching Service Implementation.

Provides the concrete DataCache (memory tier + JSON file tier with a
single disk worker) and the simpler image-byte cache.
Bounded Context: Cache Management
"""
