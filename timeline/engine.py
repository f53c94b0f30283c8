# timeline/engine.py
import time
import logging
from typing import Callable, List, Optional, Set, Union
from config import LessonConfig
from errors import AlreadyLoadedWhileRunningError, NotLoadedError
from notes.hands import resolve_hand
from notes.model import EventKind, EventSequence, Hand, NoteEvent, note_name
from timeline.progress import check_progress, next_group_start
from timeline.state import EngineState, Phase, PlayCommand, Snapshot, TickResult

def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)

class LessonEngine:
    """Plays a lesson against the wall clock and waits for the learner at each hit line.

    Elapsed time is derived from the clock on every query, never accumulated,
    so a stalled caller cannot make it drift. All time reads go through
    ``clock`` (milliseconds). Calls must be serialized; the engine does no locking.
    """
    def __init__(self, cfg: Optional[LessonConfig] = None,
                 clock: Callable[[], int] = monotonic_ms):
        self.cfg = cfg or LessonConfig()
        self._clock = clock
        self.state = EngineState()
        self.sequence: Optional[EventSequence] = None
        self.duration_ms = 0
        self.held: Set[int] = set()

    # ---------- Queries ----------
    def now(self) -> int:
        return self._clock()

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def is_active(self) -> bool:
        return self.state.phase in (Phase.RUNNING, Phase.PAUSED)

    def elapsed(self, now: Optional[int] = None) -> int:
        s = self.state
        if s.start_clock is None:
            return 0
        if s.phase is Phase.PAUSED and s.pause_start_clock is not None:
            ref = s.pause_start_clock
        else:
            ref = self._clock() if now is None else now
        return max(0, ref - s.start_clock - s.paused_accumulated_ms)

    def is_hand_enabled(self, event: NoteEvent) -> bool:
        hand = resolve_hand(event, split_point=self.cfg.split_point)
        return self.state.hand_enabled.get(hand, True)

    def chord_window(self, index: int) -> Set[int]:
        """Pitches to wait for when the NoteOn at ``index`` reaches the hit line.

        Takes NoteOns less than ``chord_tolerance_ms`` after the trigger whose hand
        is enabled; stops at the first one beyond the tolerance.
        """
        events = self.sequence
        tol = self.cfg.chord_tolerance_ms
        base = events[index].time_ms
        waiting: Set[int] = set()
        for event in events[index:]:
            if event.kind is not EventKind.NOTE_ON:
                continue
            offset = event.time_ms - base
            if offset > tol:
                break
            if offset < tol and self.is_hand_enabled(event):
                waiting.add(event.pitch)
        return waiting

    def snapshot(self, now: Optional[int] = None) -> Snapshot:
        s = self.state
        return Snapshot(
            phase=s.phase,
            elapsed=self.elapsed(now),
            cursor=s.cursor,
            waiting_pitches=frozenset(s.waiting_pitches),
            hand_enabled=dict(s.hand_enabled),
            duration_ms=self.duration_ms,
        )

    # ---------- Lifecycle ----------
    def load(self, sequence: EventSequence, duration_ms: int):
        if self.is_active:
            raise AlreadyLoadedWhileRunningError("stop the current lesson before loading another")
        self.sequence = sequence
        self.duration_ms = int(duration_ms)
        self.state = EngineState(hand_enabled=dict(self.state.hand_enabled))
        logging.info("Lesson loaded: %d events, %.1fs", len(sequence), self.duration_ms / 1000)

    def start(self):
        if self.sequence is None:
            raise NotLoadedError("load a lesson before starting")
        s = self.state
        if s.phase is not Phase.IDLE:
            logging.warning("start() ignored, lesson is %s", s.phase.value)
            return
        s.clear_run()
        s.start_clock = self._clock()
        s.phase = Phase.RUNNING
        logging.info("Lesson started")

    def stop(self):
        if self.is_active:
            logging.info("Lesson stopped at %.1fs", self.elapsed() / 1000)
        self.state.clear_run()

    def reset(self):
        self.stop()

    # ---------- Playback ----------
    def tick(self) -> TickResult:
        s = self.state
        if not self.is_active or self.sequence is None:
            return TickResult(self.snapshot())
        now = self._clock()

        if s.phase is Phase.RUNNING and self.elapsed(now) >= self.duration_ms:
            s.phase = Phase.COMPLETED
            logging.info("Lesson completed")
            s.clear_run()
            return TickResult(self.snapshot(now), completed=True)

        commands: List[PlayCommand] = []
        if s.phase is Phase.RUNNING:
            self._advance(now, commands)
        return TickResult(self.snapshot(now), tuple(commands))

    def _advance(self, now: int, commands: List[PlayCommand]):
        s = self.state
        events = self.sequence
        elapsed = self.elapsed(now)
        while s.phase is Phase.RUNNING:
            s.cursor = events.next_note_on(s.cursor)
            if s.cursor >= len(events):
                return
            event = events[s.cursor]
            if elapsed < event.time_ms or s.last_triggered == s.cursor:
                return
            s.last_triggered = s.cursor

            if self.is_hand_enabled(event):
                self._pause(now)
            else:
                hand = resolve_hand(event, split_point=self.cfg.split_point)
                logging.debug("Skipping %s hand note %s", hand.value, note_name(event.pitch))
                commands.append(PlayCommand(event.pitch, event.duration_ms, hand))
                s.cursor = events.next_note_on(s.cursor + 1)

    def _pause(self, now: int):
        s = self.state
        s.phase = Phase.PAUSED
        s.pause_start_clock = now
        s.waiting_pitches = self.chord_window(s.cursor)
        if not s.waiting_pitches:
            logging.warning("Empty chord window at event %d, not pausing", s.cursor)
            s.phase = Phase.RUNNING
            s.pause_start_clock = None
            s.cursor = next_group_start(self.sequence, s.cursor, self.cfg.chord_tolerance_ms)
            return
        logging.info("Waiting for %s",
                     " ".join(note_name(p) for p in sorted(s.waiting_pitches)))

    # ---------- Input ----------
    def note_down(self, pitch: int, velocity: int = 0):
        """Learner key press. The rewind key (A0) rewinds while RUNNING or PAUSED;
        any other key counts toward the chord being waited on."""
        self.held.add(pitch)
        if pitch == self.cfg.rewind_pitch and self.is_active:
            logging.info("Rewind triggered by %s", note_name(pitch))
            self.rewind(self.cfg.rewind_ms)
            return
        self.check_progress()

    def note_up(self, pitch: int):
        self.held.discard(pitch)

    def set_hand_enabled(self, hand: Union[Hand, str], enabled: bool):
        hand = Hand.parse(hand)
        if hand is Hand.UNASSIGNED:
            raise ValueError("hand must be left or right")
        self.state.hand_enabled[hand] = bool(enabled)
        logging.info("%s hand: %s", hand.value.capitalize(), "ON" if enabled else "OFF")
        if self.state.phase is Phase.PAUSED:
            self.check_progress()

    def check_progress(self) -> bool:
        if self.sequence is None:
            return False
        resumed = check_progress(self.state, self.held, self.sequence,
                                 self._clock(), self.cfg.chord_tolerance_ms)
        if resumed:
            logging.info("Chord satisfied, resuming at %.1fs", self.elapsed() / 1000)
        return resumed

    def rewind(self, ms: int) -> bool:
        s = self.state
        if not self.is_active or self.sequence is None:
            return False
        now = self._clock()
        before = self.elapsed(now)
        target = max(0, before - int(ms))
        s.paused_accumulated_ms = now - s.start_clock - target
        s.phase = Phase.RUNNING
        s.pause_start_clock = None
        s.waiting_pitches.clear()
        idx = self.sequence.first_at_or_after(target)
        # nothing at or after the target: start over from the first event
        s.cursor = idx if idx < len(self.sequence) else 0
        s.last_triggered = None
        logging.info("Rewound to %dms (was %dms), event %d", target, before, s.cursor)
        return True
