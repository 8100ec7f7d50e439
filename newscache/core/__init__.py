"""Core Application Layer: Orchestrates use cases on top of the cache.

Connects upstream fetch code with the cache through the domain interfaces.
"""
