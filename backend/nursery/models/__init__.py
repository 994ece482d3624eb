"""All SQLAlchemy models – re-exported for Alembic and app use."""

from nursery.models.user import User, Role
from nursery.models.species import Species
from nursery.models.zone import Zone, Bed
from nursery.models.batch import (
    Batch, BatchStage, BatchStatus, Pathway,
    OCCUPYING_STATUSES, TERMINAL_STATUSES,
)
from nursery.models.stage_history import StageHistory
from nursery.models.measurement import Measurement
from nursery.models.audit_log import AuditLog

__all__ = [
    "User", "Role",
    "Species",
    "Zone", "Bed",
    "Batch", "BatchStage", "BatchStatus", "Pathway",
    "OCCUPYING_STATUSES", "TERMINAL_STATUSES",
    "StageHistory",
    "Measurement",
    "AuditLog",
]
