"""
Inventory ledger.

Item and warehouse master data plus the quantity-on-hand ledger. Every
change to on-hand or reserved stock goes through services.py.
"""

from . import models  # noqa: F401
