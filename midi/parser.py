# midi/parser.py
import mido
from bisect import bisect_right
from typing import List, Tuple
from notes.model import RawNote
from notes.hands import hand_from_track_name

DEFAULT_TEMPO = 500000  # 120 bpm

def _tempo_map(mid: mido.MidiFile) -> List[Tuple[int, float, int]]:
    """[(abs_tick, seconds_at_tick, tempo)] from set_tempo messages on any track."""
    changes = []
    for track in mid.tracks:
        tick = 0
        for msg in track:
            tick += msg.time
            if msg.type == 'set_tempo':
                changes.append((tick, msg.tempo))
    changes.sort(key=lambda c: c[0])

    segments = [(0, 0.0, DEFAULT_TEMPO)]
    for tick, tempo in changes:
        last_tick, last_sec, last_tempo = segments[-1]
        sec = last_sec + mido.tick2second(tick - last_tick, mid.ticks_per_beat, last_tempo)
        if tick == last_tick:
            segments[-1] = (tick, last_sec, tempo)
        else:
            segments.append((tick, sec, tempo))
    return segments

def _tick_to_sec(tick: int, segments, tpb: int) -> float:
    i = bisect_right([s[0] for s in segments], tick) - 1
    seg_tick, seg_sec, tempo = segments[max(0, i)]
    return seg_sec + mido.tick2second(tick - seg_tick, tpb, tempo)

def parse_midi_to_notes(path: str) -> Tuple[List[RawNote], float]:
    """Read a Standard MIDI File into raw notes, hand hints taken from track names."""
    mid = mido.MidiFile(path)
    tpb = mid.ticks_per_beat
    segments = _tempo_map(mid)
    notes: List[RawNote] = []

    for track in mid.tracks:
        hand = hand_from_track_name(track.name)
        tick = 0
        active = {}
        for msg in track:
            tick += msg.time
            if msg.is_meta:
                continue
            if msg.type == 'note_on' and msg.velocity > 0:
                active[(msg.channel, msg.note)] = (tick, msg.velocity)
            elif msg.type == 'note_off' or (msg.type == 'note_on' and msg.velocity == 0):
                key = (msg.channel, msg.note)
                if key in active:
                    st, vel = active.pop(key)
                    notes.append(_make_note(msg.note, st, tick, vel, hand, segments, tpb))
        # close dangling
        for (_, p), (st, vel) in active.items():
            notes.append(_make_note(p, st, tick, vel, hand, segments, tpb))

    notes.sort(key=lambda n: (n.start, n.pitch))
    total = max((n.start + n.duration for n in notes), default=0.0)
    return notes, total

def _make_note(pitch, start_tick, end_tick, vel, hand, segments, tpb) -> RawNote:
    start = _tick_to_sec(start_tick, segments, tpb)
    end = _tick_to_sec(end_tick, segments, tpb)
    return RawNote(pitch=pitch, start=start, duration=max(0.0, end - start),
                   velocity=vel / 127.0, hand=hand)
