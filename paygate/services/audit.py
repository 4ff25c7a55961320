from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from paygate.db.models import AuditLog


async def log_audit(
    session: AsyncSession,
    *,
    actor: str,
    action: str,
    target_type: str,
    target_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Stage an audit entry in the caller's transaction (flushed, not committed)."""
    entry = AuditLog(
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta=json.dumps(meta, ensure_ascii=False) if meta is not None else None,
        created_at=datetime.utcnow(),
    )
    session.add(entry)
    await session.flush()
    return entry
