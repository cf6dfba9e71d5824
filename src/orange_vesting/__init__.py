"""
Orange Vesting - multi-direction token vesting ledger.
"""

__version__ = "1.0.0"
