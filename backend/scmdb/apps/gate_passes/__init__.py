"""
Gate passes.

Authorise material leaving (or entering) a warehouse gate; no ledger effect.
"""

from . import models  # noqa: F401
