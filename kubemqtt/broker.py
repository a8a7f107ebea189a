"""
MQTT Client Factory
===================

Construye clientes paho configurados desde MQTTSettings.

- MQTT 3.1.1, clean session, callback API v2
- Usuario/password si están configurados
- TLS verificando el servidor contra el CA configurado
"""
import logging
import ssl
from pathlib import Path

import paho.mqtt.client as mqtt

from .config import MQTTSettings

logger = logging.getLogger(__name__)


class MQTTOptionsError(Exception):
    """Opciones MQTT inválidas (ej: CA ilegible o no parseable)."""
    pass


def build_tls_context(ca_path: str) -> ssl.SSLContext:
    """
    SSLContext que confía solo en el CA dado.

    Raises:
        MQTTOptionsError: Si el archivo no se puede leer o no es un PEM válido
    """
    try:
        ca_data = Path(ca_path).read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise MQTTOptionsError(f"can not read '{ca_path}': {e}") from e

    try:
        context = ssl.create_default_context(cadata=ca_data)
    except (ssl.SSLError, ValueError) as e:
        raise MQTTOptionsError(f"failed to parse root certificate: {ca_path}") from e

    return context


def broker_url(settings: MQTTSettings) -> str:
    scheme = "tls" if settings.tls.enabled else "tcp"
    return f"{scheme}://{settings.broker.host}:{settings.broker.port}"


def build_mqtt_client(settings: MQTTSettings, client_id: str) -> mqtt.Client:
    """
    Cliente paho listo para connect().

    Args:
        settings: Configuración MQTT validada
        client_id: Client id (cada plane usa el suyo)

    Raises:
        MQTTOptionsError: Si la configuración TLS es inválida
    """
    client = mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        clean_session=True,
        protocol=mqtt.MQTTv311,
    )

    if settings.broker.username:
        client.username_pw_set(settings.broker.username, settings.broker.password)

    if settings.tls.enabled:
        client.tls_set_context(build_tls_context(settings.tls.ca_path))

    logger.debug(
        "MQTT client built",
        extra={
            "component": "mqtt",
            "event": "client_built",
            "client_id": client_id,
            "broker": broker_url(settings),
            "tls": settings.tls.enabled,
        }
    )
    return client
