# ========================= config.py =========================
from dataclasses import dataclass, field
from typing import Optional

@dataclass
class LessonConfig:
    prep_ms: int = 5000             # lead-in before the first note
    cooldown_ms: int = 3000         # tail after the last event
    chord_tolerance_ms: int = 50    # notes closer than this form one chord
    split_point: int = 60           # C4; below is left hand when untagged
    rewind_ms: int = 5000
    rewind_pitch: int = 21          # A0 doubles as the rewind key

@dataclass
class AudioConfig:
    output_id: Optional[int] = None  # None = system default output
    velocity: int = 100
    right_channel: int = 0           # light-guide pianos: ch1 right, ch2 left
    left_channel: int = 1
    polyphony: int = 24

@dataclass
class InputConfig:
    input_id: Optional[int] = None   # None = system default input
    buffer_size: int = 64

@dataclass
class AppConfig:
    fps: int = 60
    left_hand: bool = True
    right_hand: bool = True
    loop: bool = False
    lesson: LessonConfig = field(default_factory=LessonConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    input: InputConfig = field(default_factory=InputConfig)
