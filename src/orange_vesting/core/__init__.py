"""
Core vesting ledger, token contracts, configuration and persistence.
"""
