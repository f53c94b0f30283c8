# ========================= notes/builder.py =========================
import math
import logging
from typing import Iterable, List, Optional, Tuple
from config import LessonConfig
from errors import EmptySequenceError
from notes.model import EventSequence, NoteEvent, RawNote

def _round(x: float) -> int:
    # half-up, matching how the lesson files were authored
    return int(math.floor(x + 0.5))

def build_sequence(notes: Iterable[RawNote],
                   cfg: Optional[LessonConfig] = None) -> Tuple[EventSequence, int]:
    """Place raw notes on the lesson timeline.

    The earliest note lands at ``cfg.prep_ms``; every note becomes a NoteOn plus
    a NoteOff ``duration_ms`` later. Returns the sequence and the lesson length
    (last event + ``cfg.cooldown_ms``).
    """
    cfg = cfg or LessonConfig()
    notes = list(notes)
    if not notes:
        raise EmptySequenceError("no notes to build a lesson from")

    min_start = min(n.start for n in notes)
    events: List[NoteEvent] = []
    for n in notes:
        t = _round((n.start - min_start) * 1000) + cfg.prep_ms
        dur = _round(n.duration * 1000)
        vel = max(0, min(127, _round(n.velocity * 127)))
        events.append(NoteEvent.note_on(n.pitch, t, dur, vel, n.hand))
        events.append(NoteEvent.note_off(n.pitch, t + dur, n.hand))

    seq = EventSequence(events)
    if len(seq) == 0:
        raise EmptySequenceError("lesson has no events")
    duration_ms = seq.last_time_ms + cfg.cooldown_ms
    logging.debug("Built lesson: %d events, %d notes, %.1fs",
                  len(seq), seq.note_on_count, duration_ms / 1000)
    return seq, duration_ms
