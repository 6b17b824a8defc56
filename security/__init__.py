"""
security/ - Authorization
=========================
Explicit actor context and the capability gate applied to every
ledger mutation.
"""
