"""Telemetry provider system for meetmesh."""

from meetmesh.telemetry.base import (
    Attr,
    NoopTelemetryProvider,
    Span,
    SpanKind,
    TelemetryProvider,
)
from meetmesh.telemetry.mock import MetricPoint, MockTelemetryProvider

__all__ = [
    "Attr",
    "MetricPoint",
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "Span",
    "SpanKind",
    "TelemetryProvider",
]
