"""
services/ - Ledger Logic
========================
Balance calculation, the create/update/delete protocols, the
advance-account debt, closings, activity history and dashboard figures.
Services talk to the store only through the repositories.
"""
