# timeline/state.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Set, Tuple
from notes.model import Hand

class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"  # transient; the engine drops back to IDLE in the same tick

def _both_hands() -> Dict[Hand, bool]:
    return {Hand.LEFT: True, Hand.RIGHT: True}

@dataclass
class EngineState:
    phase: Phase = Phase.IDLE
    start_clock: Optional[int] = None        # ms, anchor of the current run
    paused_accumulated_ms: int = 0
    pause_start_clock: Optional[int] = None  # ms, set while PAUSED
    cursor: int = 0                          # earliest unresolved NoteOn
    waiting_pitches: Set[int] = field(default_factory=set)
    hand_enabled: Dict[Hand, bool] = field(default_factory=_both_hands)
    last_triggered: Optional[int] = None     # cursor whose hit line already fired

    def clear_run(self):
        self.phase = Phase.IDLE
        self.start_clock = None
        self.paused_accumulated_ms = 0
        self.pause_start_clock = None
        self.cursor = 0
        self.waiting_pitches.clear()
        self.last_triggered = None

@dataclass(frozen=True)
class PlayCommand:
    """Sound a note the learner is not playing."""
    pitch: int
    duration_ms: int
    hand: Hand

@dataclass(frozen=True)
class Snapshot:
    phase: Phase
    elapsed: int
    cursor: int
    waiting_pitches: FrozenSet[int]
    hand_enabled: Dict[Hand, bool]
    duration_ms: int = 0

@dataclass(frozen=True)
class TickResult:
    snapshot: Snapshot
    commands: Tuple[PlayCommand, ...] = ()
    completed: bool = False
