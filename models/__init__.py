"""
models/ - Domain Models
=======================
Plain dataclasses for ledger records. Models carry no persistence logic;
derived amounts (expense totals, item remainders) are computed properties.
"""
