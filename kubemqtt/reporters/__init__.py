"""
Reporters
=========

Reporters periódicos de estado del cluster vía MQTT.
"""
from .base import BaseReporter, ReporterImpl, ReporterState, ReporterAlreadyStartedError
from .pod_state import (
    PodStateReporter,
    PodStateReporterImpl,
    PodSample,
    ReportResult,
    format_pod_message,
    format_timestamp,
)

__all__ = [
    'BaseReporter',
    'ReporterImpl',
    'ReporterState',
    'ReporterAlreadyStartedError',
    'PodStateReporter',
    'PodStateReporterImpl',
    'PodSample',
    'ReportResult',
    'format_pod_message',
    'format_timestamp',
]
