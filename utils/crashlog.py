# utils/crashlog.py
"""Crash and error dumps.

Each dump is a fresh ``<kind>-<timestamp>.txt`` under :func:`log_dir`: one
header line, a rule, then the traceback. Kinds are ``error`` (caught and
reported), ``crash`` (uncaught) and ``native`` (faulthandler).
"""
import os, sys, faulthandler, datetime, traceback, threading

LOG_DIR_ENV = "PIANOTRAINER_LOG_DIR"
RULE = "=" * 60

_fault_file = None

def log_dir() -> str:
    d = os.environ.get(LOG_DIR_ENV) or os.path.join(getattr(sys, "_MEIPASS", os.getcwd()), "logs")
    os.makedirs(d, exist_ok=True)
    return d

def _new_log_path(kind: str) -> str:
    stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    return os.path.join(log_dir(), f"{kind}-{stamp}.txt")

def _dump(kind: str, header: str, exc_type, exc, tb) -> str:
    path = _new_log_path(kind)
    with open(path, "w", encoding="utf-8") as out:
        out.write(f"{header}\n{RULE}\n")
        out.writelines(traceback.format_exception(exc_type, exc, tb))
    return path

def log_exception(title: str, exc: BaseException) -> str:
    """Write ``exc`` with its traceback to a fresh error-*.txt; returns the file path."""
    header = f"[{title}] {type(exc).__name__}: {exc}"
    return _dump("error", header, type(exc), exc, exc.__traceback__)

def log_uncaught(exc_type, exc, tb, thread_name=None) -> str:
    where = "main thread" if thread_name is None else f"thread {thread_name}"
    return _dump("crash", f"UNCAUGHT EXCEPTION in {where}", exc_type, exc, tb)

def _excepthook(exc_type, exc, tb):
    try:
        log_uncaught(exc_type, exc, tb)
    finally:
        sys.__excepthook__(exc_type, exc, tb)

def _thread_excepthook(args):
    name = args.thread.name if args.thread is not None else "?"
    try:
        log_uncaught(args.exc_type, args.exc_value, args.exc_traceback, thread_name=name)
    finally:
        sys.__excepthook__(args.exc_type, args.exc_value, args.exc_traceback)

def _enable_faulthandler():
    global _fault_file
    try:
        if _fault_file is None:
            _fault_file = open(_new_log_path("native"), "w", encoding="utf-8")
        faulthandler.enable(_fault_file, all_threads=True)
    except OSError:
        _fault_file = None

def setup_crashlog():
    """Route native faults and uncaught exceptions (main and worker threads) to the log dir."""
    _enable_faulthandler()
    sys.excepthook = _excepthook
    threading.excepthook = _thread_excepthook
