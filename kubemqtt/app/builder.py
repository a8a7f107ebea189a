"""
Operator Builder
================

Construye los componentes del operator a partir de OperatorConfig.

Responsabilidad:
- Clientes de Kubernetes (kubeconfig o in-cluster)
- Data Plane (publisher de reportes)
- Control Plane + MessageHandler (si hay topic de comandos)
- PodStateReporter (si está habilitado)

Diseño:
- Builder construye, Controller orquesta el lifecycle
- Dependencias inyectables para tests (kube_apis)
"""
import logging
from typing import Optional

from ..cluster import KubeAPIs, KubePodReader, ManifestApplier, load_kube_apis
from ..config import OperatorConfig
from ..control import MessageHandler, MQTTControlPlane
from ..data import MQTTDataPlane
from ..ports import Clock
from ..reporters import PodStateReporter

logger = logging.getLogger(__name__)


class OperatorBuilder:
    """
    Usage:
        builder = OperatorBuilder(config)
        apis = builder.build_kube_apis()
        data_plane = builder.build_data_plane()
        reporter = builder.build_reporter(data_plane, apis)
    """

    def __init__(self, config: OperatorConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock

    def build_kube_apis(self) -> KubeAPIs:
        """
        Raises:
            KubeConfigError: Si la config de Kubernetes no se puede cargar
        """
        return load_kube_apis(self.config.kube.config_path)

    def build_data_plane(self) -> MQTTDataPlane:
        """
        Raises:
            MQTTOptionsError: Si la configuración TLS es inválida
        """
        return MQTTDataPlane(
            self.config.mqtt,
            publish_timeout=self.config.reporter.publish_timeout_sec,
        )

    def build_control_plane(self, apis: KubeAPIs) -> Optional[MQTTControlPlane]:
        """Control plane, o None si no hay topic de comandos configurado."""
        topics = self.config.mqtt.topics
        if not topics.cmd:
            logger.warning(
                "⚠️ MQTT_CMD_TOPIC not set, command handling disabled",
                extra={"component": "builder", "event": "control_plane_disabled"}
            )
            return None

        handler = MessageHandler(
            ManifestApplier(apis),
            cmd_topic=topics.cmd,
            cmdexe_topic=topics.cmdexe_topic,
        )
        return MQTTControlPlane(self.config.mqtt, handler)

    def build_reporter(self, data_plane: MQTTDataPlane, apis: KubeAPIs) -> Optional[PodStateReporter]:
        """PodStateReporter, o None si el reporter está deshabilitado."""
        settings = self.config.reporter
        if not settings.enabled:
            logger.info(
                "Pod state reporter disabled",
                extra={"component": "builder", "event": "reporter_disabled"}
            )
            return None

        return PodStateReporter(
            device_type=settings.device_type,
            device_id=settings.device_id,
            interval=settings.interval_sec,
            publisher=data_plane,
            pod_lister=KubePodReader(apis.core),
            target_label_key=settings.target_label_key,
            clock=self.clock,
        )
