"""
Tests for the structured logging module.
"""

import io
import json
import logging

import pytest

from deta_client import Deta, Item
from deta_client.config import ClientConfig, LoggingConfig, Settings
from deta_client.errors import BadRequestError, ItemNotFoundError
from deta_client.logging import (
    LOGGER_NAME,
    JSONFormatter,
    LogContext,
    RequestLog,
    ResponseLog,
    StructuredLogger,
    TextFormatter,
    Timer,
    configure_logging,
    generate_request_id,
    redact_api_key,
    reset_logging,
    timed,
    truncate_for_log,
)

from .conftest import PROJECT_KEY


class TestLogContext:
    """Test LogContext dataclass."""

    def test_to_dict_skips_none(self):
        ctx = LogContext(request_id="r1", base="main", extra={"custom": "value"})

        assert ctx.to_dict() == {"request_id": "r1", "base": "main", "custom": "value"}

    def test_with_update(self):
        ctx = LogContext(project_id="p1", extra={"a": 1})
        updated = ctx.with_update(base="main", extra={"b": 2})

        assert updated.project_id == "p1"
        assert updated.base == "main"
        assert updated.extra == {"a": 1, "b": 2}
        assert ctx.base is None


class TestLogRecords:
    """Test request/response records."""

    def test_request_log(self):
        log = RequestLog(request_id="r1", method="PUT", url="u", operation="put_many", item_count=3)

        d = log.to_dict()

        assert d["item_count"] == 3
        assert "base" not in d
        assert "timestamp" in d

    def test_response_log(self):
        log = ResponseLog(request_id="r1", operation="get", status_code=404, success=False)

        d = log.to_dict()

        assert d["success"] is False
        assert d["status_code"] == 404
        assert "duration_ms" not in d


class TestStructuredLogger:
    """Test StructuredLogger output."""

    @pytest.fixture
    def json_logger(self):
        return StructuredLogger("deta_client.tests.json", level="DEBUG", json_output=True)

    def test_bind_extends_context(self, json_logger, caplog):
        bound = json_logger.bind(project_id="p1")

        with caplog.at_level(logging.DEBUG, logger="deta_client.tests.json"):
            bound.info("hello", base="main")

        record = json.loads(caplog.records[-1].getMessage())
        assert record == {"message": "hello", "project_id": "p1", "base": "main"}
        assert json_logger.context.project_id is None

    def test_secret_fields_redacted(self, json_logger, caplog):
        with caplog.at_level(logging.DEBUG, logger="deta_client.tests.json"):
            json_logger.debug("auth", api_key=PROJECT_KEY)

        assert PROJECT_KEY not in caplog.text
        assert json.loads(caplog.records[-1].getMessage())["api_key"] == redact_api_key(PROJECT_KEY)

    def test_redaction_disabled(self, caplog):
        logger = StructuredLogger("deta_client.tests.raw", level="DEBUG", redact_keys=False)

        with caplog.at_level(logging.DEBUG, logger="deta_client.tests.raw"):
            logger.debug("auth", api_key=PROJECT_KEY)

        assert PROJECT_KEY in caplog.text

    def test_level_filtering(self, caplog):
        logger = StructuredLogger("deta_client.tests.quiet", level="WARNING")

        with caplog.at_level(logging.WARNING, logger="deta_client.tests.quiet"):
            logger.debug("hidden")
            logger.warning("shown")

        assert [r.levelno for r in caplog.records] == [logging.WARNING]

    def test_failed_response_logged_at_debug(self, json_logger, caplog):
        with caplog.at_level(logging.DEBUG, logger="deta_client.tests.json"):
            json_logger.log_response(
                ResponseLog(request_id="r1", operation="insert", success=False, status_code=409, duration_ms=3.2)
            )

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        payload = json.loads(record.getMessage())
        assert payload["event_type"] == "response"
        assert payload["success"] is False


class TestFormatters:
    """Test log formatters."""

    def _record(self, msg):
        return logging.LogRecord("deta_client", logging.INFO, __file__, 1, msg, None, None)

    def test_json_formatter_merges_payload(self):
        out = json.loads(JSONFormatter().format(self._record('{"operation": "get"}')))

        assert out["operation"] == "get"
        assert out["level"] == "INFO"

    def test_json_formatter_plain_message(self):
        out = json.loads(JSONFormatter().format(self._record("plain")))

        assert out["message"] == "plain"

    def test_text_formatter(self):
        out = TextFormatter().format(self._record("hello"))

        assert "INFO" in out
        assert out.endswith("deta_client: hello")


class TestClientLogging:
    """The client logs exchanges without leaking the project key."""

    async def test_request_and_response_logged(self, base, transport, caplog):
        transport.queue(200, {"key": "k", "value": 1})

        with caplog.at_level(logging.DEBUG, logger="deta_client"):
            await base.get("k")

        messages = [r.getMessage() for r in caplog.records if r.name == "deta_client"]
        assert any("GET" in m and "/test/items/k" in m for m in messages)
        assert any("get -> 200" in m for m in messages)
        assert PROJECT_KEY not in caplog.text

    async def test_batch_counts_logged(self, base, transport, caplog):
        transport.queue(207, {"processed": {"items": [{"key": "a", "value": 1}]}})

        with caplog.at_level(logging.DEBUG, logger="deta_client"):
            await base.put_many([Item.with_key("a", 1)])

        [message] = [r.getMessage() for r in caplog.records if "put_many ->" in r.getMessage()]
        assert "processed=1" in message
        assert "failed=0" in message

    async def test_rejected_batch_logged_without_counts(self, base, transport, caplog):
        transport.queue(400, {"errors": ["Duplicate keys"]})

        with caplog.at_level(logging.DEBUG, logger="deta_client"):
            with pytest.raises(BadRequestError):
                await base.put_many([Item.with_key("a", 1), Item.with_key("a", 2)])

        [record] = [r for r in caplog.records if "put_many ->" in r.getMessage()]
        assert record.levelno == logging.DEBUG
        assert "success=False" in record.getMessage()
        assert "processed=" not in record.getMessage()


@pytest.fixture
def restore_logging():
    yield
    reset_logging()


def _client(transport, base_name, **logging_options):
    settings = Settings(
        client=ClientConfig(project_key=PROJECT_KEY),
        logging=LoggingConfig(**logging_options),
    )
    return Deta(PROJECT_KEY, transport=transport, settings=settings).base(base_name)


class TestLoggingOutput:
    """Handles emit records only; output is set up by configure_logging."""

    async def test_failures_are_silent_by_default(self, transport, capsys):
        base = _client(transport, "b")
        transport.queue(404)

        with pytest.raises(ItemNotFoundError):
            await base.get("k")

        assert capsys.readouterr().err == ""
        assert logging.getLogger(LOGGER_NAME).handlers == []

    async def test_handles_do_not_share_levels(self, transport, caplog):
        shared = logging.getLogger(LOGGER_NAME)
        before = shared.level
        chatty = _client(transport, "chatty", level="DEBUG")
        quiet = _client(transport, "quiet", level="ERROR")

        assert shared.level == before

        transport.queue(200, {"key": "k", "value": 1})
        transport.queue(200, {"key": "k", "value": 1})
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            await chatty.get("k")
            await quiet.get("k")

        assert "/chatty/items/k" in caplog.text
        assert "/quiet/items/k" not in caplog.text

    async def test_handles_keep_their_own_format(self, transport, caplog):
        as_json = _client(transport, "json", level="DEBUG", format="json")
        as_text = _client(transport, "text", level="DEBUG", format="text")
        transport.queue(200, {"key": "k", "value": 1})
        transport.queue(200, {"key": "k", "value": 1})

        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            await as_json.get("k")
            await as_text.get("k")

        json_messages = [r.getMessage() for r in caplog.records if "/json/" in r.getMessage()]
        text_messages = [r.getMessage() for r in caplog.records if "/text/" in r.getMessage()]
        assert json.loads(json_messages[0])["method"] == "GET"
        assert text_messages[0].startswith("GET ")

    def test_bind_keeps_level(self):
        logger = StructuredLogger("deta_client.tests.bind", level="ERROR").bind(base="main")

        assert logger.level == logging.ERROR
        assert logger.context.base == "main"

    def test_configure_logging(self, restore_logging):
        stream = io.StringIO()

        logger = configure_logging(level="debug", stream=stream)
        StructuredLogger(level="DEBUG").debug("hello", base="main")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert "deta_client: hello base=main" in stream.getvalue()

    def test_configure_logging_replaces_its_handler(self, restore_logging):
        first, second = io.StringIO(), io.StringIO()

        configure_logging(stream=first)
        logger = configure_logging(level="WARNING", json_output=True, stream=second)
        StructuredLogger(level="DEBUG").warning("careful")

        assert len(logger.handlers) == 1
        assert first.getvalue() == ""
        assert json.loads(second.getvalue())["message"] == "careful"

    def test_reset_logging(self, restore_logging):
        configure_logging(level="DEBUG")

        reset_logging()

        assert logging.getLogger(LOGGER_NAME).handlers == []
        assert logging.getLogger(LOGGER_NAME).level == logging.NOTSET


class TestUtilities:
    """Test logging utilities."""

    def test_request_id(self):
        rid = generate_request_id()

        assert rid.startswith("req_")
        assert rid != generate_request_id()

    @pytest.mark.parametrize(
        "key,expected",
        [(None, "<not set>"), ("", "<not set>"), ("short", "***"), ("a0abcyxz_aSecretValue", "a0ab...alue")],
    )
    def test_redact_api_key(self, key, expected):
        assert redact_api_key(key) == expected

    def test_truncate(self):
        assert truncate_for_log("abc", 10) == "abc"
        assert truncate_for_log("x" * 20, 10) == "x" * 10 + "... (20 chars total)"

    def test_timer(self):
        timer = Timer()
        duration = timer.stop()

        assert duration >= 0
        assert timer.elapsed_ms == duration

    def test_timed(self):
        with timed() as timer:
            pass

        assert timer.end_time is not None
