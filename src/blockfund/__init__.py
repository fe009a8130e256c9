"""
BlockFund: crowdfunding campaigns on an authoritative ledger.
"""

__version__ = "0.1.0"
