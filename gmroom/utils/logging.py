"""
Unified logging for the room tools.

Console output for info/warnings/errors, optional mirror to a log file.
Warnings and errors are tracked for the end-of-run summary.

Usage:
    from gmroom.utils import log, logWarning, logError, logDebug, init_logging, print_summary

    init_logging(Path("gmroom.log"))     # optional, console-only without it

    log("Loading data.win...")           # Info - section headers, major points
    logWarning("3 dangling sprite refs") # Data loaded but may not be what you expect
    logError("room chunk is corrupt")    # The operation failed
    logDebug("room 4: 12 layers")        # Log file only

    print_summary()
"""

import sys
import atexit
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Tuple

# ANSI color codes
class Colors:
    YELLOW = '\033[93m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    BOLD = '\033[1m'
    RESET = '\033[0m'


# Module state
_log_file = None
_log_path: Optional[Path] = None
_warnings: List[str] = []
_errors: List[str] = []


def init_logging(log_path: Optional[Path] = None):
    """
    Start a logging session.

    Args:
        log_path: File that receives a copy of every message plus debug lines.
                  None keeps logging on the console only.
    """
    global _log_file, _log_path

    close_logging()
    reset_counts()

    if log_path is None:
        return

    _log_path = Path(log_path)
    _log_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        _log_file = open(_log_path, 'w', encoding='utf-8')
    except OSError as e:
        print(f"Warning: Could not open log file {_log_path}: {e}", file=sys.stderr)
        _log_file = None
        return

    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    _log_file.write(f"Session started: {timestamp}\n")
    _log_file.write("=" * 70 + "\n\n")
    _log_file.flush()

    atexit.register(close_logging)


def close_logging():
    """Close the log file, if any."""
    global _log_file

    if _log_file is None:
        return

    try:
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        _log_file.write(f"\n{'=' * 70}\n")
        _log_file.write(f"Session finished: {timestamp}\n")
        _log_file.close()
    except OSError:
        pass
    _log_file = None


def reset_counts():
    """Forget tracked warnings and errors."""
    global _warnings, _errors
    _warnings = []
    _errors = []


def get_counts() -> Tuple[int, int]:
    """Return (error_count, warning_count)."""
    return len(_errors), len(_warnings)


def get_warnings() -> List[str]:
    """Warnings logged since the last reset."""
    return list(_warnings)


def _write_to_file(msg: str, end: str = "\n"):
    if _log_file is None:
        return
    try:
        _log_file.write(msg + end)
        _log_file.flush()
    except OSError:
        pass


def log(msg: str = "", end: str = "\n"):
    """Info message, console and file."""
    print(msg, end=end)
    _write_to_file(msg, end)


def logWarning(msg: str, end: str = "\n"):
    """
    Warning: the data loaded or saved, but something in it deserves attention.
    Yellow on the console, counted for the summary.
    """
    formatted = f"Warning: {msg}"
    print(f"{Colors.YELLOW}{formatted}{Colors.RESET}", end=end)
    _write_to_file(formatted, end)
    _warnings.append(msg)


def logError(msg: str, end: str = "\n"):
    """
    Error: the requested operation failed.
    Red on stderr, counted for the summary.
    """
    formatted = f"ERROR: {msg}"
    print(f"{Colors.RED}{formatted}{Colors.RESET}", end=end, file=sys.stderr)
    _write_to_file(formatted, end)
    _errors.append(msg)


def logDebug(msg: str, end: str = "\n"):
    """Debug detail, written to the log file only."""
    _write_to_file(f"[DEBUG] {msg}", end)


def print_summary():
    """Print warning and error details plus the final counts."""
    log("\n" + "=" * 70)
    log("SUMMARY")
    log("=" * 70)

    for title, entries, color in (("Errors", _errors, Colors.RED),
                                  ("Warnings", _warnings, Colors.YELLOW)):
        if not entries:
            continue
        print(f"\n{color}{Colors.BOLD}{title} ({len(entries)}):{Colors.RESET}")
        _write_to_file(f"\n{title} ({len(entries)}):")
        for entry in entries:
            print(f"  {color}- {entry}{Colors.RESET}")
            _write_to_file(f"  - {entry}")

    print()
    if _errors:
        print(f"{Colors.RED}{Colors.BOLD}{len(_errors)} Error(s){Colors.RESET}", end="")
    else:
        print(f"{Colors.GREEN}0 Errors{Colors.RESET}", end="")
    print(" | ", end="")
    if _warnings:
        print(f"{Colors.YELLOW}{Colors.BOLD}{len(_warnings)} Warning(s){Colors.RESET}")
    else:
        print(f"{Colors.GREEN}0 Warnings{Colors.RESET}")

    _write_to_file(f"\n{len(_errors)} Error(s) | {len(_warnings)} Warning(s)")
