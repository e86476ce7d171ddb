from enum import Enum, IntEnum


class FingerMode(IntEnum):
    ONE = 1  # single center button
    TWO = 2  # left/right buttons, strict alternation


class ModeKind(str, Enum):
    TIME_ATTACK = 'time_attack'      # race to a tap count, lower time wins
    TAP_CHALLENGE = 'tap_challenge'  # fixed window, more taps win


class Phase(str, Enum):
    READY = 'ready'
    ON_YOUR_MARK = 'on_your_mark'
    SET = 'set'
    PLAYING = 'playing'
    FINISHED = 'finished'


class TapSide(str, Enum):
    LEFT = 'left'
    RIGHT = 'right'
