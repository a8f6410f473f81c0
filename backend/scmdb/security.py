# backend/scmdb/security.py

"""
Actor resolution for scmdb.

Authentication is handled upstream (reverse proxy / identity gateway); this
service only needs to know WHO performed an action so it can stamp documents,
stock movements and audit events. The gateway forwards the user id in the
`X-Actor-Id` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


def get_current_actor_id(
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
) -> str:
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header is required",
        )
    return actor_id
