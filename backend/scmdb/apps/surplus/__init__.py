"""
Surplus disposition.

Surplus stock is evaluated, approved by the OU head and then actioned:
transferred to another warehouse, returned to the supplier, or sold.
"""

from . import models  # noqa: F401
