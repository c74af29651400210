"""
Domain layer for the order & payment ledger.
"""
