"""
Stock transfers.

Moves stock between two warehouses: shipping deducts at the source,
receiving adds at the destination.
"""

from . import models  # noqa: F401
