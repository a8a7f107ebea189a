"""
MQTT Control Plane
==================

Control Plane: recibe comandos MQTT y los delega al MessageHandler.

- Subscribe al topic de comandos en cada (re)conexión
- El handler responde en el topic cmdexe con el mismo cliente
- Structured logging con trace correlation (en el handler)
"""
import logging
from threading import Event
from typing import Optional

import paho.mqtt.client as mqtt

from .handler import MessageHandler
from ..broker import broker_url, build_mqtt_client
from ..config import MQTTSettings

logger = logging.getLogger(__name__)

CMD_QOS = 0


class MQTTControlPlane:
    """
    Control Plane para comandos Kubernetes vía MQTT.

    Usage:
        handler = MessageHandler(applier, cmd_topic="/dType/dID/cmd")
        control_plane = MQTTControlPlane(settings, handler)
        control_plane.connect()
    """

    def __init__(
        self,
        settings: MQTTSettings,
        handler: MessageHandler,
        client_id: Optional[str] = None,
        client: Optional[mqtt.Client] = None,
    ):
        self.settings = settings
        self.handler = handler
        self.client_id = client_id or f"{settings.broker.client_id}-control"

        self.client = client or build_mqtt_client(settings, self.client_id)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.message_callback_add(handler.get_cmd_topic(), handler.command())

        self._connected = Event()
        self._subscribed = Event()

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback cuando se conecta al broker"""
        if reason_code != 0:
            logger.error(
                "Failed to connect to MQTT broker",
                extra={
                    "component": "control_plane",
                    "event": "connection_error",
                    "broker": broker_url(self.settings),
                    "reason_code": str(reason_code),
                }
            )
            return

        logger.info(
            "Control Plane connected to broker",
            extra={
                "component": "control_plane",
                "event": "broker_connected",
                "broker": broker_url(self.settings),
            }
        )
        self._connected.set()

        topic = self.handler.get_cmd_topic()
        rc, _mid = self.client.subscribe(topic, qos=CMD_QOS)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(
                f"mqtt subscribe error, topic={topic}",
                extra={
                    "component": "control_plane",
                    "event": "subscribe_error",
                    "topic": topic,
                    "mqtt_rc": rc,
                }
            )
            return

        self._subscribed.set()
        logger.info(
            "Subscribed to command topic",
            extra={
                "component": "control_plane",
                "event": "topic_subscribed",
                "topic": topic,
                "qos": CMD_QOS,
            }
        )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback cuando se desconecta del broker"""
        logger.warning(
            "Control Plane disconnected from broker",
            extra={
                "component": "control_plane",
                "event": "broker_disconnected",
                "reason_code": str(reason_code),
            }
        )
        self._connected.clear()
        self._subscribed.clear()

    @property
    def is_subscribed(self) -> bool:
        return self._subscribed.is_set()

    def connect(self, timeout: float = 5.0) -> bool:
        """Conecta al broker MQTT"""
        try:
            logger.info(
                "Connecting to MQTT broker",
                extra={
                    "component": "control_plane",
                    "event": "connection_attempt",
                    "broker": broker_url(self.settings),
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
            logger.error(
                "Failed to connect to MQTT",
                extra={
                    "component": "control_plane",
                    "event": "connection_exception",
                    "broker": broker_url(self.settings),
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            return False

    def disconnect(self):
        """Desconecta del broker MQTT"""
        logger.info("🔌 Desconectando Control Plane...")
        self.client.disconnect()
        self.client.loop_stop()
