# hod_approval/services/audit_service.py

from uuid import UUID
from typing import Optional, Dict, Any

from loguru import logger

from hod_approval.models.audit import AuditLog
from hod_approval.core.database import AsyncSessionLocal


async def log_activity(
    action: str,
    actor_id: Optional[UUID],
    actor_role: Optional[str] = None,
    actor_name: Optional[str] = None,
    target_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None
):
    """
    Creates an audit log entry in a separate DB session.
    Safe for use in BackgroundTasks: the transition it records is already
    committed, so a failure here is logged and dropped.
    """
    async with AsyncSessionLocal() as session:
        try:
            log_entry = AuditLog(
                target_id=target_id,
                actor_id=actor_id,
                actor_role=getattr(actor_role, "value", actor_role),
                actor_name=actor_name,
                action=getattr(action, "value", action),
                details=details or {}
            )

            session.add(log_entry)
            await session.commit()

        except Exception as e:
            logger.bind(tag="audit").error(f"Audit log write failed ({action}): {e}")
            await session.rollback()
