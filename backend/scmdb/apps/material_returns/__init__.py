"""
Material returns (MRV).

Material coming back from site or from an issue; completion restocks the
lines returned in good condition.
"""

from . import models  # noqa: F401
