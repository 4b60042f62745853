import sys
from datetime import datetime
from functools import partial
from types import SimpleNamespace

from rich import print as rprint
from rich.markup import escape

from chunkstash.utils.definitions import is_stderr_log_env

# level name -> rich color
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "white",
    "OK": "green",
    "WARN": "yellow",
    "ERROR": "red",
}

log_file = None


def open_log_file(filename):
    """Append log records to filename. Replaces a previously opened log file."""
    global log_file
    if log_file is not None and str(log_file.name) == str(filename):
        return
    if log_file is not None:
        log_file.close()
    log_file = open(filename, "a", encoding="utf-8")


def _format_record(msg: str, level: str) -> str:
    return f"{datetime.now().strftime('%H:%M:%S')} {('[' + level + ']').ljust(7)} {msg}"


def log(msg, level="INFO", write_to_file=True, write_to_stderr=True):
    record = _format_record(str(msg), level)
    if write_to_file and log_file is not None:
        log_file.write(record + "\n")
        log_file.flush()
    if write_to_stderr:
        # keys and values are caller supplied, never let them be parsed as markup
        rprint(f"[{LEVEL_COLORS.get(level, 'white')}]{escape(record)}[/]", file=sys.stderr, flush=True)


debug = partial(log, level="DEBUG")
info = partial(log, level="INFO")
success = partial(log, level="OK")
warning = warn = partial(log, level="WARN")
error = partial(log, level="ERROR")


def exception(msg, print_traceback=True, write_to_file=False, write_to_stderr=True):
    error(f"Exception: {msg}", write_to_file=write_to_file, write_to_stderr=write_to_stderr)
    if print_traceback:
        import traceback

        traceback.print_exc(file=log_file if write_to_file and log_file is not None else sys.stderr)


# file logger, echoed to stderr only with CHUNKSTASH_LOG_STDERR=1
fs = SimpleNamespace(
    debug=partial(debug, write_to_stderr=is_stderr_log_env),
    info=partial(info, write_to_stderr=is_stderr_log_env),
    success=partial(success, write_to_stderr=is_stderr_log_env),
    warn=partial(warn, write_to_stderr=is_stderr_log_env),
    warning=partial(warning, write_to_stderr=is_stderr_log_env),
    error=partial(error, write_to_stderr=is_stderr_log_env),
    exception=partial(exception, write_to_file=True, write_to_stderr=is_stderr_log_env),
    log=partial(log, write_to_stderr=is_stderr_log_env),
)
