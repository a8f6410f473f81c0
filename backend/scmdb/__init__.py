# backend/scmdb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in scmdb/apps/*/models.py.
"""

from .apps.audit import models as audit_models                      # audit trail
from .apps.numbering import models as numbering_models              # document number counters
from .apps.inventory import models as inventory_models              # items, warehouses, ledger
from .apps.goods_receipts import models as goods_receipt_models     # GRN
from .apps.material_issues import models as material_issue_models   # MI
from .apps.material_returns import models as material_return_models  # MRV
from .apps.stock_transfers import models as stock_transfer_models   # ST
from .apps.gate_passes import models as gate_pass_models            # GP
from .apps.surplus import models as surplus_models                  # surplus disposition
from .apps.tools import models as tool_models                       # tools + tool issues
from .apps.cycle_counts import models as cycle_count_models         # cycle counts

__all__ = [
    "audit_models",
    "numbering_models",
    "inventory_models",
    "goods_receipt_models",
    "material_issue_models",
    "material_return_models",
    "stock_transfer_models",
    "gate_pass_models",
    "surplus_models",
    "tool_models",
    "cycle_count_models",
]
