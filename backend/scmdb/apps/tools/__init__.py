"""
Tool register and tool issues.

Tools are not stock: they carry their own condition status. A tool can be
out on at most one open issue, and a damaged return flags the tool damaged.
"""

from . import models  # noqa: F401
