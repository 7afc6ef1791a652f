"""Tests for error classification and the error handler."""

import pytest

from ktn_bridge.core.errors import (
    BridgeError,
    DuplicateMappingError,
    ErrorContext,
    ErrorHandler,
    ErrorType,
    ParseFailure,
    PatternConflictError,
    classify_exception,
)


class TestClassifyException:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConnectionError("refused"), ErrorType.NETWORK_ERROR),
            (TimeoutError(), ErrorType.NETWORK_ERROR),
            (Exception("Failed to fetch"), ErrorType.NETWORK_ERROR),
            (KeyError("records.get"), ErrorType.MAPPING_ERROR),
            (SyntaxError("bad"), ErrorType.PARSE_FAILURE),
            (TypeError("x is not a function"), ErrorType.RUNTIME_ERROR),
            (RuntimeError("boom"), ErrorType.UNKNOWN_ERROR),
        ],
    )
    def test_categories(self, error, expected):
        error_type, suggestions = classify_exception(error)
        assert error_type == expected
        if expected != ErrorType.UNKNOWN_ERROR:
            assert suggestions

    def test_bridge_error_keeps_its_type(self):
        error = PatternConflictError("two patterns")
        assert classify_exception(error)[0] == ErrorType.MAPPING_ERROR


class TestBridgeError:
    def test_str_includes_context_and_suggestions(self):
        error = ParseFailure("Unexpected token", filename="app.js", line=4, column=2)
        text = str(error)
        assert text.startswith("[PARSE_FAILURE] Unexpected token")
        assert "File: app.js" in text
        assert "Line: 4, Column: 2" in text
        assert "Suggestions:" in text

    def test_to_dict(self):
        error = BridgeError("boom", ErrorType.RUNTIME_ERROR, ErrorContext(filename="a.js"))
        data = error.to_dict()
        assert data["name"] == "BridgeError"
        assert data["type"] == "RUNTIME_ERROR"
        assert data["context"]["filename"] == "a.js"
        assert data["is_user_error"] is False

    def test_user_errors(self):
        assert ParseFailure("bad", filename="a.js").is_user_error
        assert DuplicateMappingError("dup").is_user_error
        assert not BridgeError("boom").is_user_error

    def test_duplicate_mapping_is_value_error(self):
        with pytest.raises(ValueError):
            raise DuplicateMappingError("dup")


class TestErrorHandler:
    def test_wraps_and_logs(self):
        handler = ErrorHandler(max_log_size=2)
        seen = []
        handler.set_error_callback(seen.append)

        wrapped = handler.handle_error(ConnectionError("refused"), ErrorContext(filename="a.js"))

        assert isinstance(wrapped, BridgeError)
        assert wrapped.error_type == ErrorType.NETWORK_ERROR
        assert wrapped.context.original_error == "ConnectionError: refused"
        assert isinstance(wrapped.__cause__, ConnectionError)
        assert seen == [wrapped]

    def test_bridge_errors_pass_through(self):
        handler = ErrorHandler()
        error = ParseFailure("bad", filename="a.js")
        assert handler.handle_error(error) is error

    def test_log_is_bounded(self):
        handler = ErrorHandler(max_log_size=2)
        for i in range(3):
            handler.handle_error(RuntimeError(str(i)))
        assert [e.message for e in handler.get_error_log()] == ["1", "2"]
        handler.clear_error_log()
        assert handler.get_error_log() == []
