# audio/synth.py
import heapq
import logging
import pygame.midi
from config import AudioConfig
from notes.model import Hand
from timeline.state import PlayCommand

ACOUSTIC_GRAND = 0

class Synth:
    """
    System MIDI output for the notes the learner is not playing:
    - play(cmd, now) sends note-on on the hand's channel and schedules the note-off
    - update(now) releases notes whose duration has run out
    Right hand goes to channel 1 (index 0), left to channel 2 (index 1), so
    light-guide keyboards show which hand the note belongs to.
    """
    def __init__(self, cfg: AudioConfig, midi_out=None):
        self.cfg = cfg
        self.midi_out = midi_out
        self.use_midi_out = midi_out is not None
        self._owns_midi = False

        self._next_token = 1
        self._token_map = {}                          # token -> (ch, pitch)
        self._pending_off: list[tuple[int, int]] = []  # (end_ms, token)

        if self.midi_out is None:
            self._open_device()

    def _open_device(self):
        try:
            pygame.midi.init()
            self._owns_midi = True
            dev = self.cfg.output_id
            if dev is None:
                dev = pygame.midi.get_default_output_id()
            if dev == -1:
                logging.warning("No MIDI output device found, auto-played notes are silent")
                return
            self.midi_out = pygame.midi.Output(dev)
            for ch in self.channels:
                self.midi_out.set_instrument(ACOUSTIC_GRAND, ch)
            self.use_midi_out = True
            logging.info("Using MIDI output device %d", dev)
        except Exception as e:
            logging.warning("MIDI output init failed: %s", e)
            self.midi_out = None
            self.use_midi_out = False

    @property
    def channels(self) -> tuple[int, int]:
        return (self.cfg.right_channel, self.cfg.left_channel)

    def channel_for(self, hand: Hand) -> int:
        return self.cfg.left_channel if hand is Hand.LEFT else self.cfg.right_channel

    @property
    def sounding(self) -> int:
        return len(self._token_map)

    def close(self):
        try:
            if self.midi_out:
                self.all_notes_off()
                if self._owns_midi:
                    self.midi_out.close()
        except Exception as e:
            logging.debug("MIDI output close failed: %s", e)
        self.midi_out = None
        self.use_midi_out = False

    def play(self, cmd: PlayCommand, now: int):
        if not (self.use_midi_out and self.midi_out):
            return None
        if self.sounding >= self.cfg.polyphony:
            logging.debug("Polyphony limit reached, dropping pitch %d", cmd.pitch)
            return None
        ch = self.channel_for(cmd.hand)
        vel = max(1, min(int(self.cfg.velocity), 127))
        try:
            self.midi_out.note_on(int(cmd.pitch), vel, ch)
        except Exception as e:
            logging.warning("MIDI note_on failed: %s", e)
            return None
        token = self._next_token; self._next_token += 1
        self._token_map[token] = (ch, int(cmd.pitch))
        heapq.heappush(self._pending_off, (now + max(0, cmd.duration_ms), token))
        return token

    def update(self, now: int):
        while self._pending_off and self._pending_off[0][0] <= now:
            _, token = heapq.heappop(self._pending_off)
            self.note_off_token(token)

    def note_off_token(self, token: int):
        ch, p = self._token_map.pop(int(token), (None, None))
        if ch is None or not self.midi_out:
            return
        try:
            self.midi_out.note_off(p, 0, ch)
        except Exception as e:
            logging.debug("MIDI note_off failed: %s", e)

    def all_notes_off(self):
        if self.midi_out:
            for token in list(self._token_map):
                self.note_off_token(token)
        self._token_map.clear()
        self._pending_off.clear()
