"""
Shared utilities: logging, exceptions, amount conversion.
"""
