"""
Goods receipts (GRN).

Supplier deliveries are inspected by QC and, once stored, the accepted
quantity (received minus damaged) is added to the receiving warehouse.
"""

from . import models  # noqa: F401
