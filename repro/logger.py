"""
repro.logger
~~~~~~~~~~~~
Access log for the static server: JSON lines with daily rotation on disk,
one plain line per request on the console.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

_ISO = "%Y-%m-%dT%H:%M:%SZ"

def _now() -> str:  # RFC-3339 without microseconds
    return datetime.now(tz=timezone.utc).strftime(_ISO)


class _PlainFormatter(logging.Formatter):
    """ e.g. 2026-10-19T15:07:02Z 127.0.0.1 GET /?order=card-first 200 4,327B 3 ms """

    def format(self, record):  # type: ignore[override]
        d: Dict[str, Any] = record.msg if isinstance(record.msg, dict) else {}
        if not d:
            return super().format(record)

        parts = [
            d.get("ts", _now()),
            d.get("ip", "-"),
            d.get("method", "-"),
            d.get("path", "-"),
            str(d.get("status", "-")),
            f'{d.get("bytes", 0):,}B',
            f'{d.get("ms", 0)} ms',
        ]
        if d.get("error"):
            parts.append(d["error"])
        return " ".join(parts)


class _JSONFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, separators=(",", ":"))
        return json.dumps({"ts": _now(), "level": record.levelname, "msg": record.getMessage()})


class AccessLogger:
    def __init__(self, basename: str | Path, console: bool = True):
        root = logging.getLogger("repro.access")
        root.setLevel(logging.INFO)
        root.propagate = False  # keep request lines out of the root logger
        for old in list(root.handlers):
            root.removeHandler(old)
            old.close()

        basename = Path(basename).with_suffix("")  # access
        jsonl_file = basename.with_suffix(".jsonl")

        # json lines
        h = logging.handlers.TimedRotatingFileHandler(
            jsonl_file, when="midnight", backupCount=7, encoding="utf-8"
        )
        h.setFormatter(_JSONFormatter())
        root.addHandler(h)

        if console:
            c = logging.StreamHandler(sys.stdout)
            c.setFormatter(_PlainFormatter())
            root.addHandler(c)

        self.log = root
        self.path = jsonl_file

    def request(
        self,
        ip: str,
        method: str,
        path: str,
        status: int,
        total_bytes: int,
        duration_ms: int,
    ):
        self.log.info(
            {
                "event": "request",
                "ts": _now(),
                "ip": ip,
                "method": method,
                "path": path,
                "status": status,
                "bytes": total_bytes,
                "ms": duration_ms,
            }
        )

    def error(self, ip: str, method: str, path: str, status: int, reason: str):
        self.log.warning(
            {
                "event": "error",
                "ts": _now(),
                "ip": ip,
                "method": method,
                "path": path,
                "status": status,
                "error": reason,
            }
        )

    def close(self) -> None:
        for h in list(self.log.handlers):
            self.log.removeHandler(h)
            h.close()
