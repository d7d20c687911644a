import logging

from app.core.logging import CHATTY_LOGGERS, LOG_FORMAT, VitalsFormatter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("fhir-vitals", logging.INFO, __file__, 1, "로드 완료", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_fills_missing_fields():
    line = VitalsFormatter(LOG_FORMAT).format(_record())
    assert "event=system patient_id=- stage=- error_code=-" in line


def test_formatter_keeps_event_fields():
    line = VitalsFormatter(LOG_FORMAT).format(
        _record(event="patient_load_failed", patient_id="p1", stage="fetch", error_code=None)
    )
    assert "event=patient_load_failed patient_id=p1 stage=fetch error_code=-" in line


def test_configure_logging_quiets_scheduler_and_http_logs():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    saved_levels = {name: logging.getLogger(name).level for name in CHATTY_LOGGERS}
    try:
        configure_logging("info")
        assert root.level == logging.INFO
        assert logging.getLogger("apscheduler.executors").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging("debug")
        assert logging.getLogger("httpx").level == logging.DEBUG
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        for name, level in saved_levels.items():
            logging.getLogger(name).setLevel(level)
