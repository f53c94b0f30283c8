# timeline/progress.py
import logging
from typing import Iterable
from notes.model import EventSequence, note_name
from timeline.state import EngineState, Phase

def next_group_start(events: EventSequence, index: int, tolerance_ms: int) -> int:
    """First NoteOn more than ``tolerance_ms`` after the event at ``index``; ``len`` if none."""
    n = len(events)
    if index >= n:
        return n
    base = events[index].time_ms
    for i in range(index, n):
        e = events[i]
        if e.is_note_on and e.time_ms > base + tolerance_ms:
            return i
    return n

def check_progress(state: EngineState, held: Iterable[int], events: EventSequence,
                   now: int, tolerance_ms: int) -> bool:
    """Strike held pitches off the waiting set; resume once it is empty.

    Keys need not be held together: each call removes whatever is held now.
    Returns True if playback resumed.
    """
    if state.phase is not Phase.PAUSED or not state.waiting_pitches:
        return False

    for pitch in held:
        if pitch in state.waiting_pitches:
            logging.debug("Correct note pressed: %s", note_name(pitch))
            state.waiting_pitches.discard(pitch)

    if state.waiting_pitches:
        return False

    if state.pause_start_clock is not None:
        state.paused_accumulated_ms += now - state.pause_start_clock
    state.pause_start_clock = None
    state.phase = Phase.RUNNING
    state.cursor = next_group_start(events, state.cursor, tolerance_ms)
    return True
