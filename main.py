# main.py
import sys, os
sys.path.append(os.path.dirname(__file__))

from utils.crashlog import setup_crashlog, log_exception, log_dir

import argparse
import logging
import traceback
from config import AppConfig, LessonConfig, AudioConfig, InputConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def _init_logging(level=logging.INFO):
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=LOG_FORMAT, encoding="utf-8")
    try:
        from logging.handlers import RotatingFileHandler
        fh = RotatingFileHandler(os.path.join(log_dir(), "app.log"),
                                 maxBytes=2*1024*1024, backupCount=3, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(fh)
    except OSError as e:
        logging.warning("File logging disabled: %s", e)

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Play a MIDI lesson and wait for you at every note.")
    ap.add_argument('midi', help='lesson .mid file')
    ap.add_argument('--split', type=int, default=60, help='split point for untagged tracks (default C4=60)')
    ap.add_argument('--no-left', action='store_true', help='auto-play the left hand')
    ap.add_argument('--no-right', action='store_true', help='auto-play the right hand')
    ap.add_argument('--rewind-ms', type=int, default=5000, help='rewind step for the A0 key')
    ap.add_argument('--input-id', type=int, default=None, help='pygame.midi input device id')
    ap.add_argument('--output-id', type=int, default=None, help='pygame.midi output device id')
    ap.add_argument('--fps', type=int, default=60)
    ap.add_argument('--loop', action='store_true', help='restart the lesson when it ends')
    ap.add_argument('-v', '--verbose', action='store_true')
    return ap

def config_from_args(args) -> AppConfig:
    return AppConfig(
        fps=args.fps,
        left_hand=not args.no_left,
        right_hand=not args.no_right,
        loop=args.loop,
        lesson=LessonConfig(split_point=args.split, rewind_ms=args.rewind_ms),
        audio=AudioConfig(output_id=args.output_id),
        input=InputConfig(input_id=args.input_id),
    )

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_crashlog()
    _init_logging(logging.DEBUG if args.verbose else logging.INFO)
    logging.info("Starting")

    from app import App
    app = App(config_from_args(args))
    if not app.load_midi(args.midi):
        app.close()
        return 1
    return 0 if app.run() else 1

if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as e:
        log_exception("Top-level exception", e)
        logging.error("Unhandled exception: %s", e, exc_info=True)
        print("Something went wrong, see logs/app.log and logs/error-*.txt")
        traceback.print_exc()
        sys.exit(1)
