"""
Message Handler
===============

Convierte comandos MQTT en operaciones sobre la API de Kubernetes.

Payload:
    <deviceID>@<command>|<manifest YAML/JSON>

Resultado (publicado en el topic cmdexe):
    <deviceID>@<command>|<outcome>[,<outcome>...]

Ejemplo:
    node01@apply|{"apiVersion": "v1", "kind": "ConfigMap", ...}
    -> node01@apply|configmap/demo created
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from kubernetes.client.exceptions import ApiException

from .registry import CommandNotAvailableError, CommandRegistry
from ..cluster import ManifestApplier, ManifestError, parse_manifests
from ..logging import (
    generate_trace_id,
    log_error_with_context,
    log_mqtt_command,
    trace_context,
)

logger = logging.getLogger(__name__)

RESULT_QOS = 0


class CommandParseError(ValueError):
    """Payload que no respeta '<deviceID>@<command>|<body>'."""
    pass


@dataclass(frozen=True)
class Command:
    device_id: str
    name: str
    body: str

    def reply(self, result: str) -> str:
        return f"{self.device_id}@{self.name}|{result}"


def parse_command(payload: str) -> Command:
    """
    Raises:
        CommandParseError: Falta '|' o '@', o el comando está vacío
    """
    head, sep, body = payload.partition("|")
    if not sep:
        raise CommandParseError(f"missing '|' in command payload: {payload[:64]!r}")

    device_id, at, name = head.rpartition("@")
    if not at:
        raise CommandParseError(f"missing '@' in command header: {head!r}")

    name = name.strip().lower()
    if not name:
        raise CommandParseError(f"empty command in header: {head!r}")

    return Command(device_id=device_id.strip(), name=name, body=body)


def describe_error(error: Exception) -> str:
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return str(error)


class MessageHandler:
    """
    Handler del topic de comandos.

    Comandos registrados:
    - apply: create (o patch si ya existe) de cada documento
    - delete: delete de cada documento (404 = "not found")
    """

    def __init__(
        self,
        applier: ManifestApplier,
        cmd_topic: str,
        cmdexe_topic: Optional[str] = None,
    ):
        self.applier = applier
        self.cmd_topic = cmd_topic
        self.cmdexe_topic = cmdexe_topic or f"{cmd_topic}exe"

        self.command_registry = CommandRegistry()
        self.command_registry.register('apply', self._apply, "Create or update resources")
        self.command_registry.register('delete', self._delete, "Delete resources")

    def get_cmd_topic(self) -> str:
        return self.cmd_topic

    def _apply(self, body: str) -> List[str]:
        return self._run_each(self.applier.apply, body)

    def _delete(self, body: str) -> List[str]:
        return self._run_each(self.applier.delete, body)

    def _run_each(self, operation: Callable, body: str) -> List[str]:
        outcomes = []
        for manifest in parse_manifests(body):
            try:
                outcomes.append(operation(manifest))
            except (ManifestError, ApiException) as e:
                outcomes.append(f"error: {describe_error(e)}")
                break
        return outcomes

    def handle(self, topic: str, payload: bytes) -> Optional[str]:
        """
        Procesa un mensaje de comando.

        Returns:
            Payload de respuesta para cmdexe, o None si el mensaje no se
            pudo parsear (no hay device id al cual responder)
        """
        try:
            text = payload.decode('utf-8')
            command = parse_command(text)
        except (UnicodeDecodeError, CommandParseError) as e:
            logger.error(
                f"❌ Comando inválido: {e}",
                extra={
                    "component": "control_plane",
                    "event": "command_parse_error",
                    "mqtt_topic": topic,
                    "raw_payload": str(payload[:256]),
                }
            )
            return None

        with trace_context(generate_trace_id(prefix=f"cmd-{command.name}")):
            log_mqtt_command(logger, command=command.name, topic=topic, device_id=command.device_id)

            try:
                outcomes = self.command_registry.execute(command.name, command.body)
                result = ",".join(outcomes)
            except CommandNotAvailableError as e:
                logger.warning(
                    f"⚠️ {e}",
                    extra={
                        "command": command.name,
                        "available_commands": sorted(self.command_registry.available_commands),
                    }
                )
                result = f"error: unknown command '{command.name}'"
            except ManifestError as e:
                logger.warning(
                    f"⚠️ Manifest inválido: {e}",
                    extra={"component": "control_plane", "command": command.name}
                )
                result = f"error: {e}"
            except Exception as e:
                log_error_with_context(
                    logger,
                    message="❌ Error ejecutando comando",
                    exception=e,
                    component="control_plane",
                    event="command_execution_error",
                    command=command.name,
                    mqtt_topic=topic,
                )
                result = f"error: {describe_error(e)}"

            return command.reply(result)

    def command(self) -> Callable:
        """
        Callback estilo paho on_message para el topic de comandos.

        Publica la respuesta en cmdexe_topic usando el mismo cliente.

        Note:
            Corre en el network loop de paho: las llamadas a la API de
            Kubernetes bloquean el keepalive del control plane mientras duran.
        """
        def on_command(client, userdata, msg):
            reply = self.handle(msg.topic, msg.payload)
            if reply is None:
                return
            info = client.publish(self.cmdexe_topic, reply, qos=RESULT_QOS, retain=False)
            if info.rc != 0:
                logger.warning(
                    "⚠️ Error publicando resultado de comando",
                    extra={
                        "component": "control_plane",
                        "event": "result_publish_failed",
                        "mqtt_rc": info.rc,
                        "topic": self.cmdexe_topic,
                    }
                )

        return on_command
