"""Audit logging utilities."""
import enum
import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from nursery.models import AuditLog, User

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    user: Optional[User],
    action: str,
    batch_id: Optional[uuid.UUID] = None,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> Optional[AuditLog]:
    """Record an action in the audit log.

    Runs in its own session on the same engine, after the primary operation
    has committed. A failure here is logged and swallowed so it never undoes
    or aborts the operation being audited.

    Args:
        db: Session of the primary operation (used for its bind only)
        user: Acting user (None for system actions)
        action: e.g. 'CREATE_BATCH', 'UPDATE_STAGE', 'DELETE_BATCH'
        batch_id: Related batch, None when the batch no longer exists
        before: State before the change (None for creations)
        after: State after the change (None for deletions)
    """
    session = Session(bind=db.get_bind())
    try:
        log = AuditLog(
            user_id=user.id if user else None,
            batch_id=batch_id,
            action=action,
            old_values=before,
            new_values=after,
        )
        session.add(log)
        session.commit()
        return log
    except Exception as exc:
        session.rollback()
        logger.warning(f"Failed to write audit log for {action} (batch {batch_id}): {exc}")
        return None
    finally:
        session.close()


def entity_to_dict(entity: Any) -> dict:
    """Convert an SQLAlchemy entity to a JSON-safe dict for logging."""
    result = {}
    for column in entity.__table__.columns:
        value = getattr(entity, column.name)
        # Convert non-serializable types
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        elif isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, enum.Enum):
            value = value.value
        result[column.name] = value
    return result
