# notes/model.py
from bisect import bisect_left
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Tuple, Union

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

def note_name(pitch: int) -> str:
    """60 -> 'C4'."""
    return f"{NOTE_NAMES[pitch % 12]}{pitch // 12 - 1}"


class Hand(Enum):
    LEFT = "left"
    RIGHT = "right"
    UNASSIGNED = "unassigned"

    @classmethod
    def parse(cls, value) -> "Hand":
        if isinstance(value, Hand):
            return value
        v = str(value or "").strip().lower()
        if v == "left":
            return cls.LEFT
        if v == "right":
            return cls.RIGHT
        return cls.UNASSIGNED


class EventKind(Enum):
    NOTE_ON = "NoteOn"
    NOTE_OFF = "NoteOff"


@dataclass(frozen=True)
class RawNote:
    """A parsed note before it is placed on the lesson timeline."""
    pitch: int       # MIDI note number
    start: float     # seconds
    duration: float  # seconds
    velocity: float  # 0..1
    hand: Hand = Hand.UNASSIGNED

    def __post_init__(self):
        if not 0 <= self.pitch <= 127:
            raise ValueError(f"pitch out of range: {self.pitch}")
        if self.duration < 0:
            raise ValueError(f"negative duration: {self.duration}")


@dataclass(frozen=True)
class NoteEvent:
    time_ms: int
    kind: EventKind
    pitch: int
    velocity: int = 0      # NoteOn only
    duration_ms: int = 0   # NoteOn only
    hand: Hand = Hand.UNASSIGNED

    def __post_init__(self):
        if self.time_ms < 0:
            raise ValueError(f"negative event time: {self.time_ms}")
        if not 0 <= self.pitch <= 127:
            raise ValueError(f"pitch out of range: {self.pitch}")
        if not 0 <= self.velocity <= 127:
            raise ValueError(f"velocity out of range: {self.velocity}")
        if self.duration_ms < 0:
            raise ValueError(f"negative duration: {self.duration_ms}")

    @property
    def is_note_on(self) -> bool:
        return self.kind is EventKind.NOTE_ON

    @classmethod
    def note_on(cls, pitch: int, time_ms: int, duration_ms: int, velocity: int = 100,
                hand: Hand = Hand.UNASSIGNED) -> "NoteEvent":
        return cls(time_ms, EventKind.NOTE_ON, pitch, velocity, duration_ms, hand)

    @classmethod
    def note_off(cls, pitch: int, time_ms: int, hand: Hand = Hand.UNASSIGNED) -> "NoteEvent":
        return cls(time_ms, EventKind.NOTE_OFF, pitch, hand=hand)


class EventSequence:
    """Time-ordered, immutable lesson events.

    Events are stable-sorted by ``time_ms`` on construction, so simultaneous
    events keep the order they were given in.
    """
    def __init__(self, events: Iterable[NoteEvent]):
        self._events: Tuple[NoteEvent, ...] = tuple(sorted(events, key=lambda e: e.time_ms))
        self._times: List[int] = [e.time_ms for e in self._events]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[NoteEvent]:
        return iter(self._events)

    def __getitem__(self, i: Union[int, slice]):
        return self._events[i]

    def __repr__(self) -> str:
        return f"EventSequence({len(self._events)} events)"

    @property
    def events(self) -> Tuple[NoteEvent, ...]:
        return self._events

    @property
    def note_on_count(self) -> int:
        return sum(1 for e in self._events if e.is_note_on)

    @property
    def last_time_ms(self) -> int:
        return self._times[-1] if self._times else 0

    def next_note_on(self, i: int) -> int:
        """Index of the first NoteOn at or after ``i``; ``len`` if there is none."""
        n = len(self._events)
        i = max(0, i)
        while i < n and not self._events[i].is_note_on:
            i += 1
        return min(i, n)

    def first_at_or_after(self, t: int) -> int:
        """Index of the first event with ``time_ms >= t``; ``len`` if there is none."""
        return bisect_left(self._times, t)
