from datetime import timezone

from tapsprint import db
from tapsprint.services.games.modes import ModeKind
from tapsprint.services.games.records import RecordData


class Record(db.Model):
    __tablename__ = 'record'
    id = db.Column(db.Integer, primary_key=True)
    value = db.Column(db.Float, nullable=False)
    date = db.Column(db.DateTime, nullable=False, index=True)  # stored as naive UTC
    had_false_start = db.Column(db.Boolean, default=False, nullable=False)
    used_ticket = db.Column(db.Boolean, default=False, nullable=False)
    finger_mode = db.Column(db.Integer, nullable=False)  # 1 or 2
    mode_kind = db.Column(db.String(32), nullable=False)  # time_attack, tap_challenge

    __table_args__ = (
        db.Index('ix_record_board', 'finger_mode', 'mode_kind'),
    )

    @classmethod
    def from_record(cls, record: RecordData, mode_kind) -> 'Record':
        return cls(
            value=record.value,
            date=record.date.astimezone(timezone.utc).replace(tzinfo=None),
            had_false_start=record.had_false_start,
            used_ticket=record.used_ticket,
            finger_mode=record.finger_mode,
            mode_kind=ModeKind(mode_kind).value,
        )

    def to_record(self) -> RecordData:
        return RecordData(
            value=self.value,
            date=self.date.replace(tzinfo=timezone.utc),
            had_false_start=self.had_false_start,
            used_ticket=self.used_ticket,
            finger_mode=self.finger_mode,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'mode_kind': self.mode_kind,
            **self.to_record().to_dict(),
        }

    def __repr__(self) -> str:
        return f"<Record {self.finger_mode}f/{self.mode_kind} value={self.value}>"
