"""
Material issues (MI).

Approval reserves the requested stock; issuing consumes the reservation and
raises a draft outbound gate pass for the goods leaving the store.
"""

from . import models  # noqa: F401
