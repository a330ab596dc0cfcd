"""
Thara - Source Package

A personal budgeting ledger that tracks one user's spendable balance
across a custom monthly financial cycle.

DESIGN PRINCIPLES:
1. The balance only moves together with the record that explains it
2. Fail visibly: missing records and storage failures are reported
3. No hidden session state: the signed-in user is passed explicitly
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Thara Team"
