"""
MQTT Data Plane
===============

Data Plane para publicar el estado del cluster vía MQTT.

Responsabilidad: Infraestructura MQTT (canal)
- Conecta/desconecta del broker
- Implementa el puerto Publisher: publica y ESPERA el ack
- NO conoce el formato de los mensajes (eso es de los reporters)
"""
import logging
from threading import Event, Lock
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..broker import broker_url, build_mqtt_client
from ..config import MQTTSettings
from ..logging import log_error_with_context, log_mqtt_publish
from ..ports import PublishError

logger = logging.getLogger(__name__)


class MQTTDataPlane:
    """
    Data Plane: publisher MQTT con espera de ack.

    Un publish se considera exitoso solo cuando paho confirma que el mensaje
    salió (QoS 0) o fue acknowledged (QoS 1/2) dentro de publish_timeout.
    """

    def __init__(
        self,
        settings: MQTTSettings,
        client_id: Optional[str] = None,
        publish_timeout: float = 5.0,
        client: Optional[mqtt.Client] = None,
    ):
        self.settings = settings
        self.client_id = client_id or f"{settings.broker.client_id}-data"
        self.publish_timeout = publish_timeout

        self.client = client or build_mqtt_client(settings, self.client_id)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = Event()
        self._lock = Lock()
        self.message_count = 0
        self.error_count = 0

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback cuando se conecta al broker"""
        if reason_code == 0:
            logger.info(
                "✅ Data Plane conectado",
                extra={
                    "component": "data_plane",
                    "event": "connected",
                    "broker": broker_url(self.settings),
                }
            )
            self._connected.set()
        else:
            log_error_with_context(
                logger,
                message=f"❌ Error conectando Data Plane al broker MQTT: {reason_code}",
                component="data_plane",
                event="connection_failed",
                broker=broker_url(self.settings),
            )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback cuando se desconecta del broker"""
        logger.warning(
            "⚠️ Data Plane desconectado",
            extra={
                "component": "data_plane",
                "event": "disconnected",
                "reason_code": str(reason_code),
            }
        )
        self._connected.clear()

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def connect(self, timeout: float = 5.0) -> bool:
        """Conecta al broker MQTT y arranca el network loop"""
        try:
            logger.info(
                "🔌 Conectando Data Plane",
                extra={
                    "component": "data_plane",
                    "event": "connecting",
                    "broker": broker_url(self.settings),
                    "timeout": timeout,
                }
            )
            self.client.connect(
                self.settings.broker.host,
                self.settings.broker.port,
                keepalive=self.settings.broker.keepalive,
            )
            self.client.loop_start()
            return self._connected.wait(timeout=timeout)
        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error conectando Data Plane",
                exception=e,
                component="data_plane",
                event="connection_error",
                broker=broker_url(self.settings),
            )
            return False

    def disconnect(self):
        """Desconecta del broker MQTT"""
        logger.info(
            "🔌 Desconectando Data Plane",
            extra={
                "component": "data_plane",
                "event": "disconnecting",
            }
        )
        self.client.disconnect()
        self.client.loop_stop()

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        """
        Publica y espera confirmación.

        Raises:
            PublishError: No conectado, rechazado por el cliente, o sin ack
                dentro de publish_timeout
        """
        if not self._connected.is_set():
            self._record_failure(topic, qos, payload, mqtt.MQTT_ERR_NO_CONN)
            raise PublishError(topic, "not connected", mqtt.MQTT_ERR_NO_CONN)

        try:
            info = self.client.publish(topic, payload, qos=qos, retain=retain)
        except ValueError as e:
            self._record_failure(topic, qos, payload, None)
            raise PublishError(topic, str(e)) from e

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._record_failure(topic, qos, payload, info.rc)
            raise PublishError(topic, mqtt.error_string(info.rc), info.rc)

        try:
            info.wait_for_publish(timeout=self.publish_timeout)
        except (RuntimeError, ValueError) as e:
            self._record_failure(topic, qos, payload, info.rc)
            raise PublishError(topic, str(e), info.rc) from e

        if not info.is_published():
            self._record_failure(topic, qos, payload, info.rc)
            raise PublishError(topic, f"no ack within {self.publish_timeout}s", info.rc)

        with self._lock:
            self.message_count += 1
        log_mqtt_publish(logger, topic=topic, qos=qos, payload_size=len(payload.encode('utf-8')))

    def _record_failure(self, topic: str, qos: int, payload: str, rc: Optional[int]):
        with self._lock:
            self.error_count += 1
        log_mqtt_publish(
            logger,
            topic=topic,
            qos=qos,
            payload_size=len(payload.encode('utf-8')),
            success=False,
            error_code=rc,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Retorna estadísticas del data plane"""
        with self._lock:
            return {
                "messages_published": self.message_count,
                "publish_errors": self.error_count,
                "connected": self._connected.is_set(),
                "client_id": self.client_id,
            }
