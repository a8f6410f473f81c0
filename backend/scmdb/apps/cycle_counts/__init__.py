"""
Cycle counts.

Count lines snapshot the expected on-hand quantity; once the count is
completed, variances can be posted to the ledger as stock adjustments.
"""

from . import models  # noqa: F401
