from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import LessonConfig
from notes.model import EventSequence, Hand, NoteEvent
from timeline.engine import LessonEngine


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeMidiOut:
    """Records pygame.midi.Output calls."""

    def __init__(self):
        self.calls = []

    def note_on(self, note, velocity, channel):
        self.calls.append(("on", note, velocity, channel))

    def note_off(self, note, velocity, channel):
        self.calls.append(("off", note, velocity, channel))

    def set_instrument(self, program, channel):
        self.calls.append(("program", program, channel))

    def close(self):
        self.calls.append(("close",))


class FakeMidiIn:
    """Serves queued [[status, d1, d2, d3], timestamp] packets like pygame.midi.Input."""

    def __init__(self, packets=None):
        self.packets = list(packets or [])

    def push(self, *data):
        self.packets.append([list(data) + [0] * (4 - len(data)), 0])

    def poll(self):
        return bool(self.packets)

    def read(self, n):
        out, self.packets = self.packets[:n], self.packets[n:]
        return out

    def close(self):
        pass


def lesson(*rows) -> EventSequence:
    """rows: (pitch, time_ms, duration_ms[, hand]) -> sequence with NoteOn/NoteOff pairs."""
    events = []
    for row in rows:
        pitch, t, dur = row[:3]
        hand = row[3] if len(row) > 3 else Hand.UNASSIGNED
        events.append(NoteEvent.note_on(pitch, t, dur, 100, hand))
        events.append(NoteEvent.note_off(pitch, t + dur, hand))
    return EventSequence(events)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(clock):
    def _make(seq: EventSequence, duration_ms: int | None = None, cfg: LessonConfig | None = None):
        engine = LessonEngine(cfg, clock=clock)
        if duration_ms is None:
            duration_ms = seq.last_time_ms + 3000
        engine.load(seq, duration_ms)
        return engine

    return _make
