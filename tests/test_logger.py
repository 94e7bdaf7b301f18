import json
import logging

from repro.logger import AccessLogger, _PlainFormatter


def test_jsonl_entries(tmp_path):
    log = AccessLogger(tmp_path / "access.log", console=False)
    log.request("127.0.0.1", "GET", "/", 200, 4327, 3)
    log.error("127.0.0.1", "POST", "/", 405, "Method Not Allowed")
    log.close()

    assert log.path == tmp_path / "access.jsonl"
    first, second = (json.loads(ln) for ln in log.path.read_text().splitlines())
    assert first["event"] == "request" and first["bytes"] == 4327
    assert second == {**second, "event": "error", "status": 405, "error": "Method Not Allowed"}


def test_new_logger_replaces_handlers(tmp_path):
    AccessLogger(tmp_path / "one.log", console=False)
    log = AccessLogger(tmp_path / "two.log", console=False)

    assert len(log.log.handlers) == 1
    log.close()


def test_plain_line():
    record = logging.LogRecord(
        "repro.access", logging.INFO, __file__, 1,
        {"ts": "2026-10-19T15:07:02Z", "ip": "127.0.0.1", "method": "GET",
         "path": "/?order=card-first", "status": 200, "bytes": 4327, "ms": 3},
        None, None,
    )

    assert _PlainFormatter().format(record) == (
        "2026-10-19T15:07:02Z 127.0.0.1 GET /?order=card-first 200 4,327B 3 ms"
    )
