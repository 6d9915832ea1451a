from __future__ import annotations
from typing import Any, Optional

from extensions import db
from models import AuditLog


def record(principal, action: str, entity: str, entity_id: Optional[int], payload: dict[str, Any] | None = None) -> AuditLog:
    """Queue an audit row on the current session; it commits with the caller's transaction."""
    entry = AuditLog(
        user_id=getattr(principal, "user_id", None),
        action=action, entity=entity, entity_id=entity_id, payload=payload or {},
    )
    db.session.add(entry)
    return entry
