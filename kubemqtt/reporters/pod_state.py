"""
Pod State Reporter
==================

Reporta el estado de los Pods del cluster como mensajes MQTT.

Formato (fijo, un mensaje por Pod por ciclo):
    <timestamp>|podname|<name>|podlabel|<labelValue>|podphase|<phase>

Ejemplo:
    2018-01-02T03:04:05+09:00|podname|testpod1|podlabel|value1|podphase|Running

Política de errores:
- Error listando Pods: se loggea, cero publishes en el ciclo
- Error publicando un Pod: se loggea, se sigue con el siguiente
- Publishes estrictamente secuenciales (ack antes del próximo)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .base import BaseReporter, ReporterImpl
from ..ports import Clock, PodLister, Publisher, PublishError, SystemClock
from ..logging import log_error_with_context, log_report_cycle

logger = logging.getLogger(__name__)

REPORT_QOS = 0
REPORT_RETAIN = False


@dataclass(frozen=True)
class PodSample:
    """Lo que se reporta de un Pod."""
    name: str
    label_value: str
    phase: str

    @classmethod
    def from_pod(cls, pod: Any, label_key: str) -> 'PodSample':
        metadata = getattr(pod, 'metadata', None)
        status = getattr(pod, 'status', None)
        labels = (getattr(metadata, 'labels', None) or {}) if metadata else {}
        return cls(
            name=(getattr(metadata, 'name', None) or "") if metadata else "",
            label_value=labels.get(label_key, ""),
            phase=(getattr(status, 'phase', None) or "") if status else "",
        )


@dataclass(frozen=True)
class ReportResult:
    """Resumen de un ciclo (solo para logging/tests)."""
    pods: int = 0
    published: int = 0
    failed: int = 0
    listed: bool = True


def format_timestamp(instant: datetime) -> str:
    """ISO-8601 con segundos y offset +HH:MM (naive = hora local)."""
    if instant.tzinfo is None:
        instant = instant.astimezone()
    return instant.isoformat(timespec="seconds")


def format_pod_message(timestamp: str, sample: PodSample) -> str:
    return "|".join([
        timestamp,
        "podname", sample.name,
        "podlabel", sample.label_value,
        "podphase", sample.phase,
    ])


class PodStateReporterImpl(ReporterImpl):
    """
    Un ciclo de reporte de Pods.

    Args:
        publisher: Puerto MQTT (publish + ack)
        pod_lister: Puerto Kubernetes (list pods)
        target_label_key: Label cuyo valor se reporta como 'podlabel'
        clock: Fuente de tiempo para el timestamp (default: SystemClock)
    """

    def __init__(
        self,
        publisher: Publisher,
        pod_lister: PodLister,
        target_label_key: str,
        clock: Optional[Clock] = None,
    ):
        self.publisher = publisher
        self.pod_lister = pod_lister
        self.target_label_key = target_label_key
        self.clock = clock or SystemClock()

    def report(self, topic: str) -> ReportResult:
        try:
            pods = list(self.pod_lister.list_pods())
        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error listing pods",
                exception=e,
                component="pod_state_reporter",
                event="list_pods_failed",
                topic=topic,
            )
            return ReportResult(listed=False)

        published = 0
        failed = 0
        for pod in pods:
            sample = PodSample.from_pod(pod, self.target_label_key)
            payload = format_pod_message(format_timestamp(self.clock.now()), sample)
            try:
                self.publisher.publish(topic, payload, qos=REPORT_QOS, retain=REPORT_RETAIN)
                published += 1
            except PublishError as e:
                failed += 1
                logger.error(
                    f"❌ Error publishing pod state: {e}",
                    extra={
                        "component": "pod_state_reporter",
                        "event": "publish_failed",
                        "topic": topic,
                        "pod_name": sample.name,
                        "mqtt_rc": e.rc,
                    }
                )
            except Exception as e:
                failed += 1
                log_error_with_context(
                    logger,
                    message="❌ Error publishing pod state",
                    exception=e,
                    component="pod_state_reporter",
                    event="publish_failed",
                    topic=topic,
                    pod_name=sample.name,
                )

        log_report_cycle(logger, topic=topic, pods=len(pods), published=published, failed=failed)
        return ReportResult(pods=len(pods), published=published, failed=failed)


class PodStateReporter(BaseReporter):
    """BaseReporter cableado a PodStateReporterImpl."""

    def __init__(
        self,
        device_type: str,
        device_id: str,
        interval: float,
        publisher: Publisher,
        pod_lister: PodLister,
        target_label_key: str,
        clock: Optional[Clock] = None,
    ):
        super().__init__(
            device_type,
            device_id,
            interval,
            PodStateReporterImpl(publisher, pod_lister, target_label_key, clock=clock),
        )
