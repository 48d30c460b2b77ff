import logging

from qrsync.logging import LOG_FORMAT, EventFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord(
        "qrsync.tests", logging.INFO, __file__, 1, "upload.completed", (), None
    )
    record.__dict__.update(extra)
    return record


def test_event_formatter_appends_structured_fields():
    formatter = EventFormatter("%(levelname)s %(message)s")

    line = formatter.format(
        _record(
            event="upload.completed",
            record_id="page-1",
            attempt=2,
            error="slot gone",
            file_id=None,
        )
    )

    assert line == 'INFO upload.completed record_id=page-1 attempt=2 error="slot gone"'


def test_event_formatter_leaves_plain_records_untouched():
    formatter = EventFormatter("%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO upload.completed"


def test_configure_logging_installs_event_formatter(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))
    log_file = tmp_path / "qrsync.log"

    configure_logging("debug", str(log_file))

    handlers = captured["handlers"]
    assert captured["level"] == logging.DEBUG
    assert captured["force"] is True
    assert len(handlers) == 2
    assert all(isinstance(handler.formatter, EventFormatter) for handler in handlers)
    assert handlers[0].formatter._fmt == LOG_FORMAT
    assert logging.getLogger("httpx").level == logging.WARNING
    for handler in handlers:
        handler.close()
