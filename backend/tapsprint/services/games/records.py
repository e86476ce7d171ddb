from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .modes import FingerMode, ModeKind


@dataclass(frozen=True)
class RecordData:
    """Result of one finished attempt.

    ``value`` is elapsed seconds for time attack and the final tap count for
    tap challenge. ``used_ticket`` is reserved and currently always False.
    """
    value: float
    date: datetime
    had_false_start: bool
    finger_mode: int
    used_ticket: bool = False

    @classmethod
    def from_session(cls, session, now: Optional[datetime] = None) -> 'RecordData':
        if session.mode_kind is ModeKind.TIME_ATTACK:
            value = session.elapsed_ms / 1000.0
        else:
            value = float(session.tap_count)
        return cls(
            value=value,
            date=now or datetime.now(timezone.utc),
            had_false_start=session.had_false_start,
            finger_mode=int(session.finger_mode),
        )

    def is_better_than(self, other: Optional['RecordData'], mode_kind) -> bool:
        """Strictly better: lower time for time attack, more taps otherwise."""
        if other is None:
            return True
        if ModeKind(mode_kind) is ModeKind.TIME_ATTACK:
            return self.value < other.value
        return self.value > other.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'date': self.date.isoformat(),
            'hadFalseStart': self.had_false_start,
            'usedTicket': self.used_ticket,
            'fingerMode': self.finger_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecordData':
        date = datetime.fromisoformat(data['date'])
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)
        return cls(
            value=float(data['value']),
            date=date,
            had_false_start=bool(data['hadFalseStart']),
            used_ticket=bool(data.get('usedTicket', False)),
            finger_mode=int(FingerMode(int(data['fingerMode']))),
        )
