"""Optional OpenTelemetry tracing and metrics for chat requests."""
import os
from contextlib import nullcontext

PACKAGE_NAME = 'openai-chat'
DEFAULT_OTLP_ENDPOINT = 'http://localhost:4318/v1/traces'


def is_telemetry_enabled() -> bool:
    """
    Check if OpenTelemetry is enabled via environment variables.

    Follows OpenTelemetry standard: OTEL_SDK_DISABLED=false enables telemetry.
    Default is disabled.
    """
    disabled = os.getenv('OTEL_SDK_DISABLED', 'true').lower()
    return disabled in ('false', '0', 'no')


def _require_opentelemetry() -> None:
    try:
        import opentelemetry  # noqa: F401
    except ImportError:
        raise ImportError(
            "OTEL_SDK_DISABLED=false but opentelemetry not installed. "
            "Install with: pip install openai-chat[telemetry]",
        )


def _resource():  # noqa: ANN202
    from opentelemetry.sdk.resources import Resource
    return Resource.create({
        'service.name': os.getenv('OTEL_SERVICE_NAME', PACKAGE_NAME),
        'service.version': _get_package_version(),
    })


def get_tracer() -> object | None:
    """
    Get OpenTelemetry tracer if available and enabled.

    Respects existing user configuration. Only auto-configures an OTLP/HTTP exporter if no tracer
    provider has been set up.

    Returns:
        OpenTelemetry tracer instance or None if disabled.
    """
    if not is_telemetry_enabled():
        return None
    _require_opentelemetry()

    from opentelemetry import trace
    from opentelemetry.trace import NoOpTracerProvider
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    if not isinstance(trace.get_tracer_provider(), NoOpTracerProvider):
        return trace.get_tracer(PACKAGE_NAME)

    provider = TracerProvider(resource=_resource())
    trace.set_tracer_provider(provider)
    exporter = OTLPSpanExporter(
        endpoint=os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT', DEFAULT_OTLP_ENDPOINT),
        # e.g. "authorization=Bearer token,x-custom-header=value"
        headers=_parse_headers(os.getenv('OTEL_EXPORTER_OTLP_HEADERS', '')),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return trace.get_tracer(PACKAGE_NAME)


def get_meter() -> object | None:
    """
    Get OpenTelemetry meter if available and enabled.

    Respects existing user configuration. Only auto-configures if no meter provider has been set
    up.

    Returns:
        OpenTelemetry meter instance or None if disabled.
    """
    if not is_telemetry_enabled():
        return None
    _require_opentelemetry()

    from opentelemetry import metrics
    from opentelemetry.metrics._internal import NoOpMeterProvider  # Note: internal API
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter

    if not isinstance(metrics.get_meter_provider(), NoOpMeterProvider):
        return metrics.get_meter(PACKAGE_NAME)

    exporter = OTLPMetricExporter(
        endpoint=os.getenv(
            'OTEL_EXPORTER_OTLP_ENDPOINT', DEFAULT_OTLP_ENDPOINT,
        ).replace('/traces', '/metrics'),
        headers=_parse_headers(os.getenv('OTEL_EXPORTER_OTLP_HEADERS', '')),
    )
    reader = PeriodicExportingMetricReader(exporter=exporter, export_interval_millis=5000)
    metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))
    return metrics.get_meter(PACKAGE_NAME)


def record_request_metrics(
        meter: object | None,
        duration_seconds: float,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
    """
    Record token counters and the request-duration histogram for one chat completion.

    Args:
        meter: OpenTelemetry meter instance or None (no-op).
        duration_seconds: Wall-clock duration of the request.
        input_tokens: Prompt tokens reported by the API, if any.
        output_tokens: Completion tokens reported by the API, if any.
        labels: Additional labels/attributes for the metrics.
    """
    if not meter:
        return
    labels = labels or {}
    meter.create_histogram(
        name='llm_request_duration_seconds',
        description='Duration of LLM requests',
        unit='s',
    ).record(duration_seconds, labels)
    if input_tokens is not None:
        meter.create_counter(
            name='llm_tokens_input_total',
            description='Total number of input tokens consumed',
            unit='token',
        ).add(input_tokens, labels)
    if output_tokens is not None:
        meter.create_counter(
            name='llm_tokens_output_total',
            description='Total number of output tokens generated',
            unit='token',
        ).add(output_tokens, labels)


def mark_span_error(span: object | None, error: Exception) -> None:
    """Attach the error message and an ERROR status to `span` (no-op without a span)."""
    if not span:
        return
    span.set_attribute('llm.request.error', str(error))
    from opentelemetry import trace
    span.set_status(trace.Status(trace.StatusCode.ERROR, description=str(error)))


def _get_package_version() -> str:
    """Get the package version dynamically."""
    from importlib.metadata import PackageNotFoundError, version
    try:
        return version(PACKAGE_NAME)
    except PackageNotFoundError:
        return 'unknown'


def _parse_headers(header_string: str) -> dict[str, str]:
    """Parse OTEL_EXPORTER_OTLP_HEADERS format."""
    if not header_string:
        return {}

    headers = {}
    for item in header_string.split(','):
        if '=' in item:
            key, value = item.split('=', 1)
            headers[key.strip()] = value.strip()
    return headers


def safe_span(tracer: object | None, name: str, **kwargs: dict) -> object:
    """
    Create span safely, returning nullcontext if tracer unavailable.

    Args:
        tracer: OpenTelemetry tracer or None
        name: Span name
        **kwargs: Additional span arguments
    """
    if tracer:
        return tracer.start_as_current_span(name, **kwargs)
    return nullcontext()
