"""Append-only stage history for batches."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from nursery.models import BatchStage, StageHistory


class StageHistoryLog:
    """Writes happen only inside lifecycle transactions; there is no update or delete."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        batch_id: UUID,
        from_stage: Optional[BatchStage],
        to_stage: BatchStage,
        quantity: int,
        notes: Optional[str] = None,
    ) -> StageHistory:
        entry = StageHistory(
            batch_id=batch_id,
            from_stage=from_stage,
            to_stage=to_stage,
            quantity=quantity,
            notes=notes,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def read_history(self, batch_id: UUID, oldest_first: bool = False) -> List[StageHistory]:
        """Entries for a batch, newest first unless ``oldest_first``."""
        query = self.db.query(StageHistory).filter(StageHistory.batch_id == batch_id)
        if oldest_first:
            query = query.order_by(StageHistory.created_at.asc(), StageHistory.id.asc())
        else:
            query = query.order_by(StageHistory.created_at.desc(), StageHistory.id.desc())
        return query.all()

    def stage_path(self, batch_id: UUID) -> List[BatchStage]:
        return [entry.to_stage for entry in self.read_history(batch_id, oldest_first=True)]

    def purge(self, batch_id: UUID) -> int:
        """Remove all entries of a batch that is being deleted."""
        return (
            self.db.query(StageHistory)
            .filter(StageHistory.batch_id == batch_id)
            .delete(synchronize_session=False)
        )
