"""
utils/ - Shared Helpers
=======================
Logging setup and date parsing used by every other layer.
"""
