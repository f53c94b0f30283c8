# app.py
import os
import logging
import pygame
import pygame.midi
from typing import FrozenSet, Optional
from config import AppConfig
from notes.builder import build_sequence
from notes.model import Hand, note_name
from midi.parser import parse_midi_to_notes
from audio.synth import Synth
from input.midi_in import MidiInput, KeyEvent
from timeline.engine import LessonEngine
from timeline.state import Phase, TickResult
from utils.crashlog import log_exception

class App:
    def __init__(self, cfg: AppConfig, engine: Optional[LessonEngine] = None,
                 synth: Optional[Synth] = None, midi_in: Optional[MidiInput] = None):
        self.cfg = cfg
        self.engine = engine or LessonEngine(cfg.lesson)
        self.engine.set_hand_enabled(Hand.LEFT, cfg.left_hand)
        self.engine.set_hand_enabled(Hand.RIGHT, cfg.right_hand)
        self.synth = synth or Synth(cfg.audio)
        self.midi_in = midi_in or MidiInput(cfg.input)

        self.lesson_name = "No lesson loaded"
        self.lesson_description = ""
        self._last_phase = Phase.IDLE
        self._last_waiting: FrozenSet[int] = frozenset()

    # ---------- Loading ----------
    def load_midi(self, path: str) -> bool:
        try:
            notes, _ = parse_midi_to_notes(path)
            seq, duration_ms = build_sequence(notes, self.cfg.lesson)
            self.engine.load(seq, duration_ms)
        except Exception as e:
            log_exception("load_midi", e)
            logging.error("Failed to load %s: %s", path, e)
            return False
        self.lesson_name = os.path.splitext(os.path.basename(path))[0]
        self.lesson_description = f"{seq.note_on_count} notes, {duration_ms / 1000:.1f}s"
        logging.info("Loaded %s (%s)", self.lesson_name, self.lesson_description)
        return True

    # ---------- Input ----------
    def handle_key(self, ev: KeyEvent):
        if ev.down:
            self.engine.note_down(ev.pitch, ev.velocity)
        else:
            self.engine.note_up(ev.pitch)

    # ---------- One frame ----------
    def step(self) -> TickResult:
        for ev in self.midi_in.poll():
            self.handle_key(ev)
        result = self.engine.tick()
        now = self.engine.now()
        for cmd in result.commands:
            self.synth.play(cmd, now)
        self.synth.update(now)
        self._report(result)
        return result

    def _report(self, result: TickResult):
        snap = result.snapshot
        if result.completed:
            logging.info("%s finished", self.lesson_name)
            self.synth.all_notes_off()
        elif snap.phase is not self._last_phase:
            logging.debug("Phase %s -> %s at %.1fs", self._last_phase.value,
                          snap.phase.value, snap.elapsed / 1000)
        if snap.phase is Phase.PAUSED and snap.waiting_pitches != self._last_waiting:
            left = " ".join(note_name(p) for p in sorted(snap.waiting_pitches))
            logging.info("Play: %s", left)
        self._last_phase = snap.phase
        self._last_waiting = snap.waiting_pitches

    # ---------- Main loop ----------
    def run(self) -> bool:
        if self.engine.sequence is None:
            logging.error("No lesson loaded")
            return False
        clock = pygame.time.Clock()
        self.engine.start()
        try:
            while True:
                clock.tick(self.cfg.fps)
                result = self.step()
                if result.completed:
                    if not self.cfg.loop:
                        break
                    self.engine.start()
        except KeyboardInterrupt:
            logging.info("Interrupted")
        finally:
            self.engine.stop()
            self.close()
        return True

    def close(self):
        self.synth.close()
        self.midi_in.close()
        if pygame.midi.get_init():
            pygame.midi.quit()
