import io
import json
import logging

from checkout_flow.logging_config import JsonFormatter, configure_logging


def test_json_formatter_carries_request_id():
    record = logging.LogRecord("checkout_flow.orchestrator", logging.INFO, __file__, 1, "purchase %s", ("IDLE",), None)
    record.request_id = "req-1"
    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "purchase IDLE"
    assert line["level"] == "INFO"
    assert line["request_id"] == "req-1"
    assert line["logger"] == "checkout_flow.orchestrator"


def test_configure_logging_installs_json_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    stream = io.StringIO()
    try:
        handler = configure_logging(stream=stream)
        logging.getLogger("checkout_flow.test").info("hello", extra={"request_id": "abc"})
        handler.flush()
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line == {**line, "message": "hello", "request_id": "abc"}
