# notes/hands.py
from typing import Optional, Union
from notes.model import Hand, NoteEvent

SPLIT_POINT = 60  # C4

def hand_from_track_name(name: Optional[str]) -> Hand:
    """'Piano Left' -> LEFT, 'RH (right)' -> RIGHT, anything else UNASSIGNED."""
    n = (name or "").lower()
    if "left" in n:
        return Hand.LEFT
    if "right" in n:
        return Hand.RIGHT
    return Hand.UNASSIGNED

def resolve_hand(event: NoteEvent, explicit_hint: Union[Hand, str, None] = None,
                 split_point: int = SPLIT_POINT) -> Hand:
    """Which hand plays ``event``: explicit hint, then the event's own tag, then the split point.

    Never returns UNASSIGNED.
    """
    for hint in (explicit_hint, event.hand):
        hand = Hand.parse(hint)
        if hand is not Hand.UNASSIGNED:
            return hand
    return Hand.LEFT if event.pitch < split_point else Hand.RIGHT
