from collections import deque
from typing import Deque, List

from .modes import FingerMode


# (minimum taps/sec, level), checked top-down. Two fingers alternate, so the
# same skill produces roughly double the one-finger rate.
EFFECT_THRESHOLDS = {
    FingerMode.ONE: ((13, 5), (11, 4), (8, 3), (5, 2)),
    FingerMode.TWO: ((23, 5), (20, 4), (15, 3), (10, 2)),
}

MIN_EFFECT_LEVEL = 1
MAX_EFFECT_LEVEL = 5


def effect_level_for(tps: float, finger_mode: FingerMode) -> int:
    """Map a tap rate to the 1-5 effect level for the given finger mode."""
    for threshold, level in EFFECT_THRESHOLDS[FingerMode(finger_mode)]:
        if tps >= threshold:
            return level
    return MIN_EFFECT_LEVEL


class TapRateWindow:
    """Sliding window of recent tap timestamps (ms since play start).

    Entries more than ``max_age_ms`` older than the newest tap are evicted,
    and the window never holds more than ``max_entries`` taps.
    """

    def __init__(self, max_entries: int = 10, max_age_ms: float = 2000):
        self.max_entries = max_entries
        self.max_age_ms = max_age_ms
        self._timestamps: Deque[float] = deque()

    def __len__(self) -> int:
        return len(self._timestamps)

    @property
    def timestamps(self) -> List[float]:
        return list(self._timestamps)

    def clear(self) -> None:
        self._timestamps.clear()

    def record(self, ts_ms: float) -> float:
        """Add a tap and return the current rate in taps/sec."""
        self._timestamps.append(ts_ms)
        while self._timestamps and ts_ms - self._timestamps[0] > self.max_age_ms:
            self._timestamps.popleft()
        while len(self._timestamps) > self.max_entries:
            self._timestamps.popleft()
        return self.rate()

    def rate(self) -> float:
        if len(self._timestamps) < 2:
            return 0.0
        span = self._timestamps[-1] - self._timestamps[0]
        if span <= 0:
            return 0.0
        return (len(self._timestamps) - 1) / (span / 1000.0)
