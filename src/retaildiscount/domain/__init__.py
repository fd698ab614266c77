"""Domain layer: money, customers, items, and the bill aggregate.

This layer depends only on the standard library.
It must never import from services, infrastructure, commands, or config.
"""
