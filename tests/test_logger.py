"""Tests for structured JSON logging."""

import json
from contextlib import redirect_stdout
from io import StringIO

from hypothesis import given
from hypothesis import strategies as st

from cryptonique.utils.logger import LEVELS, StructuredLogger
from cryptonique.utils.trace_context import clear_trace, create_trace


def capture(emit) -> list[dict]:
    """Run emit() and return the JSON entries it printed."""
    buffer = StringIO()
    with redirect_stdout(buffer):
        emit()
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line]


class TestLoggerJSONFormat:
    """Tests for JSON log format compliance."""

    @given(
        level=st.sampled_from(LEVELS),
        message=st.text(min_size=1),
        context=st.dictionaries(
            st.text(min_size=1, max_size=20).filter(lambda x: x[0].isalpha() and x != "trace_id"),
            st.one_of(st.text(), st.integers(), st.booleans()),
            max_size=5,
        ),
    )
    def test_log_entries_have_required_fields(self, level, message, context):
        """
        Every entry is one JSON object with timestamp, level, component and
        message, plus the caller's context when given.
        """
        clear_trace()
        logger = StructuredLogger("ProviderResolver")

        entries = capture(lambda: logger.log(level, message, context or None))

        assert len(entries) == 1
        entry = entries[0]
        assert entry["level"] == level
        assert entry["component"] == "ProviderResolver"
        assert entry["message"] == message
        assert entry["timestamp"].endswith("Z")
        assert "T" in entry["timestamp"]
        if context:
            assert entry["context"] == context
        else:
            assert "context" not in entry

    def test_unknown_level_is_logged_as_info(self):
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.log("verbose", "hello"))

        assert entries[0]["level"] == "INFO"

    def test_non_serializable_context_is_stringified(self):
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.info("odd value", context={"value": object()}))

        assert entries[0]["context"]["value"].startswith("<object object")


class TestTraceInjection:
    """Tests for automatic trace ID propagation into log context."""

    def test_active_trace_is_added(self):
        logger = StructuredLogger("Test")
        trace_id = create_trace()
        try:
            entries = capture(lambda: logger.info("with trace", context={"provider": "Binance"}))
        finally:
            clear_trace()

        assert entries[0]["context"] == {"provider": "Binance", "trace_id": trace_id}

    def test_explicit_trace_is_kept(self):
        logger = StructuredLogger("Test")
        create_trace("outer")
        try:
            entries = capture(lambda: logger.info("explicit", context={"trace_id": "inner"}))
        finally:
            clear_trace()

        assert entries[0]["context"]["trace_id"] == "inner"

    def test_no_trace_no_context(self):
        clear_trace()
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.info("plain"))

        assert "context" not in entries[0]


class TestExceptionLogging:
    """Tests for exception details on warning and error entries."""

    def _raised(self) -> Exception:
        try:
            raise ValueError("bad payload")
        except ValueError as e:
            return e

    def test_warning_includes_exception(self):
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.warning("provider failed", exception=self._raised()))

        exception = entries[0]["exception"]
        assert exception["type"] == "ValueError"
        assert exception["message"] == "bad payload"
        assert "Traceback" in exception["stack_trace"]

    def test_error_without_exception(self):
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.error("plain error"))

        assert "exception" not in entries[0]

    def test_info_level_drops_exception(self):
        logger = StructuredLogger("Test")

        entries = capture(lambda: logger.log("INFO", "ignored", exception=self._raised()))

        assert "exception" not in entries[0]


class TestFileOutput:
    def test_entries_are_appended_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        logger = StructuredLogger("Test", str(log_file))

        capture(lambda: logger.info("first"))
        capture(lambda: logger.critical("second"))

        lines = log_file.read_text().splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["first", "second"]
