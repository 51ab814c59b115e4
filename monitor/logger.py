"""
Logging for the fee engine CLI:
  - stderr: one line per record, level tag and short logger name
  - file (optional): verbose debug log at <log_dir>/fees_YYYYMMDD_HHMMSS.log
  - file (optional): machine-readable single-line JSON (ndjson)

Stdout is left alone so CLI results stay pipeable.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

_LEVEL_TAGS = {
    "DEBUG": "DBG",
    "INFO": "INF",
    "WARNING": "WRN",
    "ERROR": "ERR",
    "CRITICAL": "CRT",
}


class ConsoleFormatter(logging.Formatter):
    """`HH:MM:SS TAG [engine] message`, with the exception text on its own line."""

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        tag = _LEVEL_TAGS.get(record.levelname, "???")
        source = record.name.rsplit(".", 1)[-1]
        line = f"{ts} {tag} [{source}] {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            line += f"\n     {record.exc_info[1]}"
        return line


class JSONFormatter(logging.Formatter):
    """Single-line JSON for machine consumption."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, separators=(",", ":"))


def _verbose_file_handler(log_dir: str) -> tuple[logging.Handler, str]:
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = os.path.join(log_dir, f"fees_{timestamp}.log")
    handler = logging.FileHandler(log_path, mode="a")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    return handler, log_path


def setup_logging(
    level: str = "INFO",
    json_log_file: str | None = None,
    log_dir: str | None = None,
) -> str | None:
    """
    Replace the root logger's handlers. The console handler on stderr is
    always attached at `level`; the verbose file (log_dir) and JSON lines
    (json_log_file) handlers only when asked for.

    Returns the path to the verbose log file, or None when not written.
    """
    root = logging.getLogger()
    # Root stays at DEBUG; handlers do the filtering
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    console.setFormatter(ConsoleFormatter())
    root.addHandler(console)

    log_path = None
    if log_dir:
        verbose, log_path = _verbose_file_handler(log_dir)
        root.addHandler(verbose)

    if json_log_file:
        fh = logging.FileHandler(json_log_file, mode="a")
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)

    return log_path
