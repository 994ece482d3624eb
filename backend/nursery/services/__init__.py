"""Core nursery services. Each takes the request's SQLAlchemy session."""
from nursery.services.capacity_ledger import CapacityLedger
from nursery.services.stage_history import StageHistoryLog
from nursery.services.batch_lifecycle import BatchLifecycleManager
from nursery.services.measurement_recorder import MeasurementRecorder
from nursery.services.readiness import ReadinessEstimator

__all__ = [
    "CapacityLedger",
    "StageHistoryLog",
    "BatchLifecycleManager",
    "MeasurementRecorder",
    "ReadinessEstimator",
]
