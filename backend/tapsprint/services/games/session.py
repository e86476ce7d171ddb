"""Tap game session state machine.

A session walks ready -> on_your_mark -> set -> playing -> finished. Taps
during ``set`` are false starts: play begins immediately with a penalty
(time attack rejects taps for the first few seconds, tap challenge starts
the counter below zero). ``reset()`` returns any session to ``ready``.

All timing goes through an injected scheduler, and every mutation is
followed by a synchronous notification to subscribed listeners.
"""

import logging
import random
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional

from .modes import FingerMode, ModeKind, Phase, TapSide
from .scheduler import Stopwatch, TimerHandle
from .scoring import TapRateWindow, effect_level_for


logger = logging.getLogger(__name__)

Listener = Callable[['GameSession'], None]


@dataclass(frozen=True)
class SessionRules:
    on_your_mark_ms: int = 1500
    set_min_ms: int = 1500
    set_max_ms: int = 3000  # exclusive
    tick_interval_ms: int = 10
    invalid_feedback_ms: int = 200
    time_attack_target: int = 100
    tap_challenge_limit_ms: int = 10000
    false_start_penalty_ms: int = 3000
    false_start_penalty_taps: int = 10
    rate_window_size: int = 10
    rate_window_ms: int = 2000

    @classmethod
    def from_config(cls, config) -> 'SessionRules':
        defaults = cls()
        return cls(
            on_your_mark_ms=int(config.get('ON_YOUR_MARK_MS', defaults.on_your_mark_ms)),
            set_min_ms=int(config.get('SET_MIN_MS', defaults.set_min_ms)),
            set_max_ms=int(config.get('SET_MAX_MS', defaults.set_max_ms)),
            tick_interval_ms=int(config.get('TICK_INTERVAL_MS', defaults.tick_interval_ms)),
            invalid_feedback_ms=int(config.get('INVALID_FEEDBACK_MS', defaults.invalid_feedback_ms)),
            time_attack_target=int(config.get('TIME_ATTACK_TARGET', defaults.time_attack_target)),
            tap_challenge_limit_ms=int(config.get('TAP_CHALLENGE_LIMIT_MS', defaults.tap_challenge_limit_ms)),
            false_start_penalty_ms=int(config.get('FALSE_START_PENALTY_MS', defaults.false_start_penalty_ms)),
            false_start_penalty_taps=int(config.get('FALSE_START_PENALTY_TAPS', defaults.false_start_penalty_taps)),
        )


@dataclass(frozen=True)
class SessionSnapshot:
    finger_mode: int
    mode_kind: str
    phase: str
    tap_count: int
    invalid_tap_count: int
    last_tap_side: Optional[str]
    had_false_start: bool
    is_in_penalty: bool
    penalty_remaining_ms: float
    elapsed_ms: float
    remaining_ms: float
    target_taps: Optional[int]
    effect_level: int
    current_tps: float
    last_tap_was_invalid: bool
    invalid_tap_side: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)


class GameSession:
    def __init__(self, finger_mode, mode_kind, scheduler, rng=None, rules: Optional[SessionRules] = None):
        self.finger_mode = FingerMode(finger_mode)
        self.mode_kind = ModeKind(mode_kind)
        self.rules = rules or SessionRules()
        self._scheduler = scheduler
        self._rng = rng if rng is not None else random.Random()
        self._listeners: List[Listener] = []
        self._sequence_timer: Optional[TimerHandle] = None
        self._tick_timer: Optional[TimerHandle] = None
        self._feedback_timer: Optional[TimerHandle] = None
        self._init_state()

    def _init_state(self) -> None:
        self._phase = Phase.READY
        self._tap_count = 0
        self._invalid_tap_count = 0
        self._last_tap_side: Optional[TapSide] = None
        self._had_false_start = False
        self._last_tap_was_invalid = False
        self._invalid_tap_side: Optional[TapSide] = None
        self._rate_window = TapRateWindow(self.rules.rate_window_size, self.rules.rate_window_ms)
        self._current_tps = 0.0
        self._effect_level = 1
        self._stopwatch = Stopwatch(self._scheduler)

    # ---- listeners ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ---- read-only state ----

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_time_attack(self) -> bool:
        return self.mode_kind is ModeKind.TIME_ATTACK

    @property
    def tap_count(self) -> int:
        return self._tap_count

    @property
    def invalid_tap_count(self) -> int:
        return self._invalid_tap_count

    @property
    def last_tap_side(self) -> Optional[TapSide]:
        return self._last_tap_side

    @property
    def had_false_start(self) -> bool:
        return self._had_false_start

    @property
    def last_tap_was_invalid(self) -> bool:
        return self._last_tap_was_invalid

    @property
    def invalid_tap_side(self) -> Optional[TapSide]:
        return self._invalid_tap_side

    @property
    def effect_level(self) -> int:
        return self._effect_level

    @property
    def current_tps(self) -> float:
        return self._current_tps

    @property
    def elapsed_ms(self) -> float:
        return self._stopwatch.elapsed_ms

    @property
    def is_in_penalty(self) -> bool:
        if not self.is_time_attack or not self._had_false_start:
            return False
        return self.elapsed_ms < self.rules.false_start_penalty_ms

    @property
    def penalty_remaining_ms(self) -> float:
        if not self.is_in_penalty:
            return 0.0
        return max(0.0, self.rules.false_start_penalty_ms - self.elapsed_ms)

    @property
    def remaining_ms(self) -> float:
        """Time left in a tap challenge; always 0 for time attack."""
        if self.is_time_attack:
            return 0.0
        limit = float(self.rules.tap_challenge_limit_ms)
        return min(limit, max(0.0, limit - self.elapsed_ms))

    @property
    def elapsed_formatted(self) -> str:
        return f"{self.elapsed_ms / 1000.0:.2f}"

    @property
    def remaining_formatted(self) -> str:
        return f"{self.remaining_ms / 1000.0:.2f}"

    @property
    def pending_timers(self) -> List[TimerHandle]:
        timers = (self._sequence_timer, self._tick_timer, self._feedback_timer)
        return [t for t in timers if t is not None and t.active]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            finger_mode=int(self.finger_mode),
            mode_kind=self.mode_kind.value,
            phase=self._phase.value,
            tap_count=self._tap_count,
            invalid_tap_count=self._invalid_tap_count,
            last_tap_side=self._last_tap_side.value if self._last_tap_side else None,
            had_false_start=self._had_false_start,
            is_in_penalty=self.is_in_penalty,
            penalty_remaining_ms=self.penalty_remaining_ms,
            elapsed_ms=self.elapsed_ms,
            remaining_ms=self.remaining_ms,
            target_taps=self.rules.time_attack_target if self.is_time_attack else None,
            effect_level=self._effect_level,
            current_tps=self._current_tps,
            last_tap_was_invalid=self._last_tap_was_invalid,
            invalid_tap_side=self._invalid_tap_side.value if self._invalid_tap_side else None,
        )

    # ---- commands ----

    def start_sequence(self) -> None:
        """Begin the on-your-mark / set countdown. No-op unless ready."""
        if self._phase is not Phase.READY:
            return
        self._phase = Phase.ON_YOUR_MARK
        logger.info(f"[phase] {self._label()} -> on_your_mark")
        self._notify()
        self._sequence_timer = self._scheduler.call_later(
            self.rules.on_your_mark_ms, self._enter_set, label='on_your_mark'
        )

    def _enter_set(self) -> None:
        if self._phase is not Phase.ON_YOUR_MARK:
            return
        self._phase = Phase.SET
        # Random hold so the go-signal cannot be anticipated
        set_duration = self._rng.randrange(self.rules.set_min_ms, self.rules.set_max_ms)
        logger.info(f"[phase] {self._label()} -> set hold={set_duration}ms")
        self._notify()
        self._sequence_timer = self._scheduler.call_later(set_duration, self._start_game, label='set')

    def handle_tap(self, side: Optional[TapSide] = None) -> bool:
        """Process one tap. Returns True only when the tap counted.

        ``side`` is the button tapped in two-finger mode; None for one finger.
        """
        if self._phase in (Phase.READY, Phase.ON_YOUR_MARK, Phase.FINISHED):
            return False

        if side is not None:
            side = TapSide(side)

        if self._phase is Phase.SET:
            self._handle_false_start()
            return False

        if self.is_in_penalty:
            return False

        if self.finger_mode is FingerMode.TWO and side is not None and side == self._last_tap_side:
            self._reject_same_side(side)
            return False

        self._tap_count += 1
        self._last_tap_side = side
        self._update_rate()
        self._clear_invalid_feedback()

        if self.is_time_attack and self._tap_count >= self.rules.time_attack_target:
            self._finish_game(notify=False)

        self._notify()
        return True

    def reset(self) -> None:
        """Cancel all timers and return to a freshly constructed state."""
        self._cancel_timers()
        self._init_state()
        logger.info(f"[reset] {self._label()}")
        self._notify()

    def dispose(self) -> None:
        self._cancel_timers()
        self._listeners.clear()

    # ---- internals ----

    def _reject_same_side(self, side: TapSide) -> None:
        self._invalid_tap_count += 1
        self._last_tap_was_invalid = True
        self._invalid_tap_side = side
        if self._feedback_timer is not None:
            self._feedback_timer.cancel()
        self._feedback_timer = self._scheduler.call_later(
            self.rules.invalid_feedback_ms, self._expire_invalid_feedback, label='invalid_feedback'
        )
        self._notify()

    def _expire_invalid_feedback(self) -> None:
        self._feedback_timer = None
        self._last_tap_was_invalid = False
        self._invalid_tap_side = None
        self._notify()

    def _clear_invalid_feedback(self) -> None:
        if self._feedback_timer is not None:
            self._feedback_timer.cancel()
            self._feedback_timer = None
        self._last_tap_was_invalid = False
        self._invalid_tap_side = None

    def _update_rate(self) -> None:
        self._current_tps = self._rate_window.record(self.elapsed_ms)
        self._effect_level = effect_level_for(self._current_tps, self.finger_mode)

    def _handle_false_start(self) -> None:
        self._had_false_start = True
        if self._sequence_timer is not None:
            self._sequence_timer.cancel()
            self._sequence_timer = None
        if not self.is_time_attack:
            self._tap_count = -self.rules.false_start_penalty_taps
        logger.info(f"[false-start] {self._label()} tap_count={self._tap_count}")
        self._start_game()

    def _start_game(self) -> None:
        self._sequence_timer = None
        self._phase = Phase.PLAYING
        self._stopwatch.start()
        self._tick_timer = self._scheduler.call_every(
            self.rules.tick_interval_ms, self._on_tick, label='tick'
        )
        logger.info(f"[phase] {self._label()} -> playing")
        self._notify()

    def _on_tick(self) -> None:
        if self._phase is not Phase.PLAYING:
            return
        if not self.is_time_attack and self.elapsed_ms >= self.rules.tap_challenge_limit_ms:
            self._finish_game()
            return
        self._notify()

    def _finish_game(self, notify: bool = True) -> None:
        self._phase = Phase.FINISHED
        self._stopwatch.stop()
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None
        logger.info(
            f"[finish] {self._label()} taps={self._tap_count} elapsed={self.elapsed_formatted}s "
            f"false_start={self._had_false_start}"
        )
        if notify:
            self._notify()

    def _cancel_timers(self) -> None:
        for timer in (self._sequence_timer, self._tick_timer, self._feedback_timer):
            if timer is not None:
                timer.cancel()
        self._sequence_timer = None
        self._tick_timer = None
        self._feedback_timer = None

    def _label(self) -> str:
        return f"fingers={int(self.finger_mode)} mode={self.mode_kind.value}"

    def __repr__(self) -> str:
        return f"<GameSession {self._label()} phase={self._phase.value} taps={self._tap_count}>"
