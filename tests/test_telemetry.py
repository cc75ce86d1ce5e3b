"""Tests for OpenTelemetry integration."""
import os
import pytest
from unittest.mock import patch, MagicMock
from openai_chat import Chat, ResponseShapeError
from openai_chat.telemetry import (
    is_telemetry_enabled,
    get_tracer,
    get_meter,
    record_request_metrics,
    safe_span,
    _parse_headers,
)
from tests.conftest import completion_body


def mock_tracer_and_span() -> tuple[MagicMock, MagicMock]:
    mock_tracer = MagicMock()
    mock_span = MagicMock()
    mock_tracer.start_as_current_span.return_value.__enter__ = MagicMock(return_value=mock_span)
    mock_tracer.start_as_current_span.return_value.__exit__ = MagicMock(return_value=None)
    return mock_tracer, mock_span


class TestTelemetryConfiguration:
    """Test telemetry configuration and setup."""

    def test_telemetry_disabled_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert not is_telemetry_enabled()

    @pytest.mark.parametrize('value', ['false', 'False', '0', 'no'])
    def test_telemetry_enabled_with_env_var(self, value: str):
        with patch.dict(os.environ, {"OTEL_SDK_DISABLED": value}):
            assert is_telemetry_enabled()

    def test_telemetry_disabled_explicitly(self):
        with patch.dict(os.environ, {"OTEL_SDK_DISABLED": "true"}):
            assert not is_telemetry_enabled()

    def test_get_tracer_and_meter_return_none_when_disabled(self):
        with patch.dict(os.environ, {"OTEL_SDK_DISABLED": "true"}):
            assert get_tracer() is None
            assert get_meter() is None

    def test_missing_opentelemetry_raises(self):
        with patch.dict(os.environ, {"OTEL_SDK_DISABLED": "false"}):
            with patch('builtins.__import__', side_effect=ImportError):
                with pytest.raises(
                    ImportError, match="OTEL_SDK_DISABLED=false but opentelemetry not installed",
                ):
                    get_tracer()
                with pytest.raises(
                    ImportError, match="OTEL_SDK_DISABLED=false but opentelemetry not installed",
                ):
                    get_meter()

    def test_parse_headers(self):
        assert _parse_headers('') == {}
        assert _parse_headers('authorization=Bearer token, x-custom=a=b') == {
            'authorization': 'Bearer token',
            'x-custom': 'a=b',
        }

    def test_safe_span_without_tracer(self):
        with safe_span(None, 'test') as span:
            assert span is None


class TestChatTelemetry:
    """Test telemetry integration in Chat.send."""

    def test_chat_without_telemetry(self):
        with patch.dict(os.environ, {"OTEL_SDK_DISABLED": "true"}):
            chat = Chat(api_key='dummy_token')
        assert chat.tracer is None
        assert chat.meter is None

    def test_send_records_span_attributes(self):
        mock_tracer, mock_span = mock_tracer_and_span()
        mock_meter = MagicMock()
        with patch('openai_chat.chat.get_tracer', return_value=mock_tracer):
            with patch('openai_chat.chat.get_meter', return_value=mock_meter):
                chat = Chat(api_key='dummy_token')
        chat.client = MagicMock()
        chat.client.chat.completions.with_raw_response.create.return_value = MagicMock(
            text=completion_body('Paris'),
        )
        chat.user('What is the capital of France?')
        assert chat.send() == 'Paris'

        mock_tracer.start_as_current_span.assert_called_once()
        name = mock_tracer.start_as_current_span.call_args.args[0]
        attributes = mock_tracer.start_as_current_span.call_args.kwargs['attributes']
        assert name == 'llm.openai.chat'
        assert attributes['llm.model'] == 'gpt-4o'
        assert attributes['llm.messages.count'] == 1
        mock_span.set_attribute.assert_any_call('llm.tokens.input', 12)
        mock_span.set_attribute.assert_any_call('llm.tokens.output', 5)
        mock_meter.create_histogram.assert_called_once()
        assert mock_meter.create_counter.call_count == 2

    def test_send_error_is_recorded_on_span(self):
        mock_tracer, mock_span = mock_tracer_and_span()
        with patch('openai_chat.chat.get_tracer', return_value=mock_tracer):
            with patch('openai_chat.chat.get_meter', return_value=None):
                chat = Chat(api_key='dummy_token')
        chat.client = MagicMock()
        chat.client.chat.completions.with_raw_response.create.return_value = MagicMock(
            text='not json',
        )
        chat.user('Hello')
        with pytest.raises(ResponseShapeError):
            chat.send()

        error_calls = [
            c for c in mock_span.set_attribute.call_args_list
            if c.args[0] == 'llm.request.error'
        ]
        assert len(error_calls) == 1
        assert mock_span.set_status.called
        status_arg = mock_span.set_status.call_args[0][0]
        assert hasattr(status_arg, 'status_code')


def test_record_request_metrics():
    meter = MagicMock()
    record_request_metrics(meter, 1.5, input_tokens=10, output_tokens=None, labels={'a': 'b'})
    meter.create_histogram.return_value.record.assert_called_once_with(1.5, {'a': 'b'})
    meter.create_counter.assert_called_once()
    meter.create_counter.return_value.add.assert_called_once_with(10, {'a': 'b'})


def test_record_request_metrics_without_meter():
    # no-op
    record_request_metrics(None, 1.0, input_tokens=1, output_tokens=1)
