# ========================= input/midi_in.py =========================
import logging
import pygame.midi
from dataclasses import dataclass
from typing import List, Optional, Sequence
from config import InputConfig

NOTE_OFF = 0x80
NOTE_ON = 0x90

@dataclass(frozen=True)
class KeyEvent:
    down: bool
    pitch: int
    velocity: int = 0

def decode_message(data: Sequence[int]) -> Optional[KeyEvent]:
    """Raw MIDI bytes -> KeyEvent. Note-on with velocity 0 is a release; other messages are ignored."""
    if len(data) < 3:
        return None
    status, pitch, vel = data[0] & 0xF0, int(data[1]), int(data[2])
    if status == NOTE_ON and vel > 0:
        return KeyEvent(True, pitch, vel)
    if status == NOTE_OFF or status == NOTE_ON:
        return KeyEvent(False, pitch, 0)
    return None

class MidiInput:
    """Polls a pygame.midi input port. Any object with ``poll()`` and ``read(n)`` works as ``device``."""
    def __init__(self, cfg: InputConfig, device=None):
        self.cfg = cfg
        self.device = device
        self._owns_midi = False
        if self.device is None:
            self._open_device()

    def _open_device(self):
        try:
            pygame.midi.init()
            self._owns_midi = True
            dev = self.cfg.input_id
            if dev is None:
                dev = pygame.midi.get_default_input_id()
            if dev == -1:
                logging.warning("No MIDI input device found")
                return
            self.device = pygame.midi.Input(dev, self.cfg.buffer_size)
            logging.info("Listening to MIDI input device %d", dev)
        except Exception as e:
            logging.warning("MIDI input init failed: %s", e)
            self.device = None

    @property
    def connected(self) -> bool:
        return self.device is not None

    def poll(self) -> List[KeyEvent]:
        if self.device is None:
            return []
        out: List[KeyEvent] = []
        try:
            while self.device.poll():
                for data, _timestamp in self.device.read(self.cfg.buffer_size):
                    ev = decode_message(data)
                    if ev is not None:
                        out.append(ev)
        except Exception as e:
            logging.warning("MIDI input read failed, disconnecting: %s", e)
            self.device = None
        return out

    def close(self):
        try:
            if self.device is not None and self._owns_midi:
                self.device.close()
        except Exception as e:
            logging.debug("MIDI input close failed: %s", e)
        self.device = None
