"""
Campaign rules and read projections.
"""

__all__: list[str] = []
