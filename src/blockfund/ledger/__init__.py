"""
Ledger package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import adapters or the gateway router here.
"""

__all__ = [
    "models",
    "state_machine",
    "interface",
    "local_adapter",
    "http_adapter",
    "factory",
    "router",
]
