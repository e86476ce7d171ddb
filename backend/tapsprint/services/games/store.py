import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from tapsprint.models import Record
from .modes import FingerMode, ModeKind
from .records import RecordData


logger = logging.getLogger(__name__)


class RecordStore:
    """Best and history records, one board per (finger mode, mode kind).

    Every saved attempt is kept; history reads are capped at
    ``history_limit`` most recent entries.
    """

    def __init__(self, session, history_limit: int = 10):
        self._session = session
        self.history_limit = history_limit

    def _board(self, finger_mode, mode_kind):
        return self._session.query(Record).filter_by(
            finger_mode=int(FingerMode(finger_mode)),
            mode_kind=ModeKind(mode_kind).value,
        )

    def save(self, record: RecordData, mode_kind) -> RecordData:
        """Persist ``record`` and return the board's best after saving."""
        current_best = self.get_best(record.finger_mode, mode_kind)
        try:
            self._session.add(Record.from_record(record, mode_kind))
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(f"[record-save] failed for {record.finger_mode}f/{ModeKind(mode_kind).value}: {e}", exc_info=True)
            raise
        is_new_best = record.is_better_than(current_best, mode_kind)
        logger.info(
            f"[record-save] board={record.finger_mode}f/{ModeKind(mode_kind).value} "
            f"value={record.value} new_best={is_new_best}"
        )
        return record if is_new_best else current_best

    def get_best(self, finger_mode, mode_kind) -> Optional[RecordData]:
        if ModeKind(mode_kind) is ModeKind.TIME_ATTACK:
            value_order = Record.value.asc()
        else:
            value_order = Record.value.desc()
        # Ties go to the earliest record, matching the strict comparison in save()
        row = self._board(finger_mode, mode_kind).order_by(value_order, Record.date.asc(), Record.id.asc()).first()
        return row.to_record() if row else None

    def get_history(self, finger_mode, mode_kind) -> List[RecordData]:
        """Most recent first."""
        rows = (
            self._board(finger_mode, mode_kind)
            .order_by(Record.date.desc(), Record.id.desc())
            .limit(self.history_limit)
            .all()
        )
        return [row.to_record() for row in rows]
