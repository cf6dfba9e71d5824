"""
Command-line interface for operating a vesting deployment.
"""
